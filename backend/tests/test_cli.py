import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from app.core.config import get_settings
from rollcall.cli import EXIT_EXHAUSTED, EXIT_INVALID, app

runner = CliRunner()


@pytest.fixture(name="store_path")
def store_path_fixture(tmp_path: Path) -> Path:
    return tmp_path / "rollcall_state.json"


def _run(store_path: Path, *args: str):
    return runner.invoke(app, ["--store", str(store_path), *args])


def _import(store_path: Path, tmp_path: Path, names):
    source = tmp_path / "class.json"
    source.write_text(json.dumps(names), encoding="utf-8")
    return _run(store_path, "import", str(source))


def test_import_pick_and_exhaust(store_path: Path, tmp_path: Path):
    result = _import(store_path, tmp_path, ["Ada", "Ben"])
    assert result.exit_code == 0
    assert "Imported 2 names" in result.output

    picks = {_run(store_path, "pick").output.strip() for _ in range(2)}
    assert picks == {"Ada", "Ben"}

    exhausted = _run(store_path, "pick")
    assert exhausted.exit_code == EXIT_EXHAUSTED
    assert "rollcall reset" in exhausted.output


def test_reset_and_status(store_path: Path, tmp_path: Path):
    _import(store_path, tmp_path, ["Ada", "Ben"])
    _run(store_path, "pick")
    assert _run(store_path, "reset").exit_code == 0

    status = _run(store_path, "status")
    assert "Total: 2  Remaining: 2  Picked: 0" in status.output


def test_bad_import_exits_with_validation_code(store_path: Path, tmp_path: Path):
    _import(store_path, tmp_path, ["Ada"])
    empty = tmp_path / "empty.txt"
    empty.write_text("\n", encoding="utf-8")

    result = _run(store_path, "import", str(empty))
    assert result.exit_code == EXIT_INVALID
    assert "Roster is empty" in result.output
    assert "Total: 1" in _run(store_path, "status").output


def test_export_then_restore(store_path: Path, tmp_path: Path):
    _import(store_path, tmp_path, ["Ada", "Ben", "Chloe"])
    _run(store_path, "pick")
    exported = tmp_path / "export.json"
    assert _run(store_path, "export", "--output", str(exported)).exit_code == 0
    document = json.loads(exported.read_text(encoding="utf-8"))

    _run(store_path, "reset")
    result = _run(store_path, "restore", str(exported))
    assert result.exit_code == 0
    assert f"Picked: {document['picked'][0]}" in result.output
    assert "Remaining: 2" in result.output


def test_restore_rejects_non_object(store_path: Path, tmp_path: Path):
    bad = tmp_path / "bad.json"
    bad.write_text('["Ada"]', encoding="utf-8")
    result = _run(store_path, "restore", str(bad))
    assert result.exit_code == EXIT_INVALID


def test_sound_toggle(store_path: Path):
    assert "Sound: on" in _run(store_path, "sound").output
    assert "Sound: off" in _run(store_path, "sound", "off").output
    assert "Sound: off" in _run(store_path, "status").output
    assert _run(store_path, "sound", "loud").exit_code == EXIT_INVALID


def test_unreadable_store_file_falls_back_to_defaults(store_path: Path):
    store_path.write_bytes(b"\xff\xfe garbage")
    result = _run(store_path, "status")
    assert result.exit_code == 0
    assert f"Total: {len(get_settings().default_roster)}" in result.output


def test_bad_default_roster_env_does_not_break_commands(store_path: Path, tmp_path: Path, monkeypatch):
    _import(store_path, tmp_path, ["Ada", "Ben"])
    monkeypatch.setenv("DEFAULT_ROSTER", "Ada,Ada,Ben")
    get_settings.cache_clear()
    try:
        result = _run(store_path, "status")
        assert result.exit_code == 0
        assert "Total: 2" in result.output
    finally:
        monkeypatch.delenv("DEFAULT_ROSTER")
        get_settings.cache_clear()
