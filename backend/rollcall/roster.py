"""
Roster state manager.

Owns the full roster, the pool of names not yet called, and the ordered list
of names already called. Every mutation goes through `pick_one`, `reset`,
`import_roster` or `initialize`, and is written to the backing store before
listeners are notified.
"""

from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence

from rollcall.store import KeyValueStore, load_persisted, save_state

logger = logging.getLogger(__name__)

DEFAULT_NAMES: List[str] = [
    "Ada", "Ben", "Chloe", "Dev", "Elena", "Farid", "Grace", "Hiro",
    "Ines", "Jonah", "Kaia", "Luca", "Maya", "Nils", "Omar", "Priya", "Quinn",
]

Listener = Callable[[str, "RosterState"], None]


class ValidationError(ValueError):
    """Raised when a proposed roster is not a non-empty flat list of unique names."""


@dataclass(frozen=True)
class RosterState:
    roster: tuple[str, ...]
    remaining: tuple[str, ...]
    picked: tuple[str, ...]

    @property
    def exhausted(self) -> bool:
        return bool(self.roster) and not self.remaining


@dataclass
class Snapshot:
    roster: List[str]
    picked: List[str]
    remaining: List[str]
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat(timespec="seconds"))

    def to_dict(self) -> dict:
        return asdict(self)


def validate_names(names: Any) -> List[str]:
    """Return stripped names, or raise ValidationError if the input is not usable as a roster."""
    if isinstance(names, (str, bytes)) or not isinstance(names, (list, tuple)):
        raise ValidationError("Roster must be a list of names")
    if not names:
        raise ValidationError("Roster is empty")

    cleaned: List[str] = []
    seen = set()
    for item in names:
        if not isinstance(item, str):
            raise ValidationError(f"Roster entries must be strings, got {type(item).__name__}")
        name = item.strip()
        if not name:
            raise ValidationError("Roster contains a blank name")
        if name in seen:
            raise ValidationError(f"Duplicate name in roster: {name}")
        seen.add(name)
        cleaned.append(name)
    return cleaned


def _valid_or_none(names: Any) -> Optional[List[str]]:
    try:
        return validate_names(names)
    except ValidationError:
        return None


def _partition_or_none(roster: List[str], remaining: Any, picked: Any) -> Optional[tuple[List[str], List[str]]]:
    """Accept persisted remaining/picked only when they split the roster exactly."""
    if isinstance(remaining, list) and not remaining:
        remaining_names: Optional[List[str]] = []
    else:
        remaining_names = _valid_or_none(remaining)
    if isinstance(picked, list) and not picked:
        picked_names: Optional[List[str]] = []
    else:
        picked_names = _valid_or_none(picked)
    if remaining_names is None or picked_names is None:
        return None
    if set(remaining_names) & set(picked_names):
        return None
    if len(remaining_names) + len(picked_names) != len(roster):
        return None
    if set(remaining_names) | set(picked_names) != set(roster):
        return None
    return remaining_names, picked_names


class RosterStateManager:
    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        *,
        default_roster: Optional[Sequence[str]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store
        self._default_roster = validate_names(list(default_roster or DEFAULT_NAMES))
        self._rng = rng or random.Random()
        self._listeners: List[Listener] = []
        self._roster: List[str] = list(self._default_roster)
        self._remaining: List[str] = list(self._roster)
        self._picked: List[str] = []

    @classmethod
    def from_store(
        cls,
        store: KeyValueStore,
        *,
        default_roster: Optional[Sequence[str]] = None,
        rng: Optional[random.Random] = None,
    ) -> "RosterStateManager":
        """Build a manager and restore whatever the store holds."""
        manager = cls(store, default_roster=default_roster, rng=rng)
        manager.initialize(load_persisted(store))
        return manager

    # -- reads ---------------------------------------------------------------

    @property
    def state(self) -> RosterState:
        return RosterState(tuple(self._roster), tuple(self._remaining), tuple(self._picked))

    @property
    def roster(self) -> List[str]:
        return list(self._roster)

    @property
    def remaining(self) -> List[str]:
        return list(self._remaining)

    @property
    def picked(self) -> List[str]:
        return list(self._picked)

    @property
    def exhausted(self) -> bool:
        return self.state.exhausted

    @property
    def needs_reset(self) -> bool:
        return self.exhausted and len(self._picked) == len(self._roster)

    def export_snapshot(self) -> Snapshot:
        return Snapshot(roster=self.roster, picked=self.picked, remaining=self.remaining)

    # -- subscribers ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: str) -> None:
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(event, state)
            except Exception:
                logger.exception("Roster listener failed on %s event", event)

    def _commit(self, event: str) -> None:
        if self._store is not None:
            save_state(self._store, self._roster, self._remaining, self._picked)
        self._notify(event)

    # -- mutations -----------------------------------------------------------

    def initialize(self, persisted: Optional[Mapping[str, Any]] = None) -> RosterState:
        """
        Restore roster, pool and pick order from persisted data.

        Anything missing or inconsistent falls back to the default roster or a
        fresh pool; nothing here raises on bad input.
        """
        persisted = persisted or {}

        roster = _valid_or_none(persisted.get("roster"))
        if roster is None:
            if "roster" in persisted:
                logger.warning("Persisted roster is unusable; using default roster")
            roster = list(self._default_roster)

        split = _partition_or_none(roster, persisted.get("remaining"), persisted.get("picked"))
        if split is None:
            if "remaining" in persisted or "picked" in persisted:
                logger.warning("Persisted pick progress does not match roster; starting a fresh pool")
            remaining, picked = list(roster), []
        else:
            remaining, picked = split

        self._roster = roster
        self._remaining = remaining
        self._picked = picked
        logger.debug(
            "Initialized roster: %d names, %d remaining, %d picked",
            len(self._roster), len(self._remaining), len(self._picked),
        )
        self._commit("restore")
        return self.state

    def pick_one(self) -> Optional[str]:
        """Call one name uniformly from the remaining pool; None once everyone has been called."""
        if not self._remaining:
            logger.info("Pick requested but all %d names have been called", len(self._roster))
            return None
        index = self._rng.randrange(len(self._remaining))
        name = self._remaining.pop(index)
        self._picked.append(name)
        logger.info("Picked %s (%d remaining)", name, len(self._remaining))
        self._commit("pick")
        return name

    def reset(self) -> RosterState:
        self._remaining = list(self._roster)
        self._picked = []
        logger.info("Reset roll call for %d names", len(self._roster))
        self._commit("reset")
        return self.state

    def import_roster(self, names: Sequence[str]) -> RosterState:
        """Replace the roster and restart the session; state is untouched if validation fails."""
        cleaned = validate_names(names)
        self._roster = cleaned
        self._remaining = list(cleaned)
        self._picked = []
        logger.info("Imported roster with %d names", len(cleaned))
        self._commit("import")
        return self.state
