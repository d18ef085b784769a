from datetime import UTC, datetime
from typing import Mapping, Optional

from sqlmodel import Session, SQLModel, create_engine

from app.core.config import get_settings
from app import models  # noqa: F401 - ensures models are registered with metadata

settings = get_settings()
engine = create_engine(settings.database_url, echo=settings.debug)


def init_db() -> None:
    """Create tables; called during startup."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Yield a session for dependency injection."""
    with Session(engine) as session:
        yield session


class SqlStore:
    """Key-value store over the StoreEntry table; each call commits in a single transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, key: str) -> Optional[str]:
        entry = self.session.get(models.StoreEntry, key)
        return entry.value if entry else None

    def _stage(self, key: str, value: str) -> None:
        entry = self.session.get(models.StoreEntry, key)
        if entry is None:
            entry = models.StoreEntry(key=key, value=value)
        else:
            entry.value = value
            entry.updated_at = datetime.now(UTC)
        self.session.add(entry)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, str]) -> None:
        """Stage every key and commit once; nothing is kept if any write fails."""
        try:
            for key, value in items.items():
                self._stage(key, value)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def remove(self, key: str) -> None:
        entry = self.session.get(models.StoreEntry, key)
        if entry is not None:
            self.session.delete(entry)
            self.session.commit()
