"""
Roll-call picker core.

Random selection without replacement over a class roster, with progress kept
in a key-value store so a session survives restarts.
"""

from rollcall.roster import (  # noqa: F401
    DEFAULT_NAMES,
    RosterState,
    RosterStateManager,
    Snapshot,
    ValidationError,
)
from rollcall.store import JsonFileStore, MemoryStore  # noqa: F401
