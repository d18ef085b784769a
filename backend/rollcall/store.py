"""
Key-value persistence for roll-call sessions.

Each piece of state lives under its own key as a JSON-encoded value, so any
one of them can be read or rewritten independently. Values that are missing
or fail to decode are skipped and the caller falls back to defaults.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)

ROSTER_KEY = "roster"
REMAINING_KEY = "remaining"
PICKED_KEY = "picked"
SOUND_ENABLED_KEY = "sound_enabled"

STATE_KEYS = (ROSTER_KEY, REMAINING_KEY, PICKED_KEY)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def set_many(self, items: Mapping[str, str]) -> None: ...


class MemoryStore:
    """Dict-backed store; handy for tests and throwaway sessions."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def set_many(self, items: Mapping[str, str]) -> None:
        self._data.update(items)


class JsonFileStore:
    """
    Store backed by a single JSON object on disk.

    The file is re-read on every access and rewritten through a temp file in
    the same directory, then renamed over the original. A file that is
    missing or unreadable behaves like an empty store.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError):
            logger.warning("Ignoring unreadable store file %s", self.path)
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable store file %s", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring store file %s: expected a JSON object", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def set_many(self, items: Mapping[str, str]) -> None:
        data = self._read()
        data.update(items)
        self._write(data)


def _decode(store: KeyValueStore, key: str) -> Any:
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Discarding malformed persisted value for %r", key)
        return None


def load_persisted(store: KeyValueStore) -> Dict[str, Any]:
    """Read roster/remaining/picked, leaving out any key that is absent or malformed."""
    persisted: Dict[str, Any] = {}
    for key in STATE_KEYS:
        value = _decode(store, key)
        if value is not None:
            persisted[key] = value
    return persisted


def save_state(store: KeyValueStore, roster: List[str], remaining: List[str], picked: List[str]) -> None:
    """Write all three lists in one batch so a failed save never leaves them out of step."""
    store.set_many(
        {
            ROSTER_KEY: json.dumps(list(roster), ensure_ascii=False),
            REMAINING_KEY: json.dumps(list(remaining), ensure_ascii=False),
            PICKED_KEY: json.dumps(list(picked), ensure_ascii=False),
        }
    )


def load_sound_enabled(store: KeyValueStore) -> bool:
    """Sound is on unless the flag was explicitly stored as false (JSON false or the string "false")."""
    raw = store.get(SOUND_ENABLED_KEY)
    if raw is None:
        return True
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    if value is False:
        return False
    if isinstance(value, str) and value.strip().lower() == "false":
        return False
    return True


def save_sound_enabled(store: KeyValueStore, enabled: bool) -> None:
    store.set(SOUND_ENABLED_KEY, json.dumps(bool(enabled)))
