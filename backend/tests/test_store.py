import json
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.db import SqlStore
from rollcall.store import (
    JsonFileStore,
    MemoryStore,
    load_persisted,
    load_sound_enabled,
    save_sound_enabled,
    save_state,
)


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine


def test_json_file_store_persists_across_instances(tmp_path: Path):
    path = tmp_path / "state" / "rollcall.json"
    save_state(JsonFileStore(path), ["A", "B"], ["B"], ["A"])

    reopened = JsonFileStore(path)
    assert load_persisted(reopened) == {"roster": ["A", "B"], "remaining": ["B"], "picked": ["A"]}


def test_json_file_store_remove(tmp_path: Path):
    store = JsonFileStore(tmp_path / "s.json")
    store.set("picked", "[]")
    store.remove("picked")
    store.remove("never-set")
    assert store.get("picked") is None


def test_corrupt_store_file_reads_as_empty(tmp_path: Path):
    path = tmp_path / "s.json"
    path.write_text("this is not json", encoding="utf-8")
    store = JsonFileStore(path)
    assert store.get("roster") is None
    store.set("roster", json.dumps(["A"]))
    assert load_persisted(store) == {"roster": ["A"]}


def test_each_key_is_independent():
    store = MemoryStore({"roster": '["A", "B"]', "remaining": "oops", "picked": '["A"]'})
    assert load_persisted(store) == {"roster": ["A", "B"], "picked": ["A"]}


def test_sound_flag_defaults_on():
    store = MemoryStore()
    assert load_sound_enabled(store) is True
    save_sound_enabled(store, False)
    assert store.get("sound_enabled") == "false"
    assert load_sound_enabled(store) is False
    save_sound_enabled(store, True)
    assert load_sound_enabled(store) is True


def test_sound_flag_only_disabled_by_explicit_false():
    assert load_sound_enabled(MemoryStore({"sound_enabled": "garbage"})) is True
    assert load_sound_enabled(MemoryStore({"sound_enabled": "False"})) is False


def test_store_file_with_invalid_utf8_reads_as_empty(tmp_path: Path):
    path = tmp_path / "s.json"
    path.write_bytes(b'{"roster": "\xff\xfe"}')
    store = JsonFileStore(path)
    assert load_persisted(store) == {}
    store.set("roster", json.dumps(["A"]))
    assert load_persisted(store) == {"roster": ["A"]}


def test_sound_flag_disabled_by_json_encoded_string():
    assert load_sound_enabled(MemoryStore({"sound_enabled": '"false"'})) is False
    assert load_sound_enabled(MemoryStore({"sound_enabled": "true"})) is True


def test_sql_store_failed_save_keeps_previous_state(engine, monkeypatch):
    with Session(engine) as session:
        save_state(SqlStore(session), ["A", "B", "C"], ["B", "C"], ["A"])

    with Session(engine) as session:
        calls = []
        original_add = session.add

        def flaky_add(instance, *args, **kwargs):
            calls.append(instance)
            if len(calls) == 2:
                raise RuntimeError("database went away")
            return original_add(instance, *args, **kwargs)

        monkeypatch.setattr(session, "add", flaky_add)
        with pytest.raises(RuntimeError):
            save_state(SqlStore(session), ["A", "B", "C"], ["C"], ["A", "B"])

    with Session(engine) as session:
        assert load_persisted(SqlStore(session)) == {
            "roster": ["A", "B", "C"],
            "remaining": ["B", "C"],
            "picked": ["A"],
        }


def test_json_file_store_failed_save_keeps_previous_file(tmp_path: Path, monkeypatch):
    path = tmp_path / "s.json"
    store = JsonFileStore(path)
    save_state(store, ["A", "B"], ["B"], ["A"])

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("rollcall.store.os.replace", failing_replace)
    with pytest.raises(OSError):
        save_state(store, ["A", "B"], [], ["A", "B"])

    assert load_persisted(store) == {"roster": ["A", "B"], "remaining": ["B"], "picked": ["A"]}
    assert [p.name for p in tmp_path.iterdir()] == ["s.json"]
