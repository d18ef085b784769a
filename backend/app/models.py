from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class StoreEntry(SQLModel, table=True):
    """One persisted key (roster, remaining, picked, sound_enabled) with its JSON-encoded value."""

    key: str = Field(primary_key=True)
    value: str  # JSON text
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC), nullable=False)
