import logging
import os
from pathlib import Path
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

from rollcall.roster import DEFAULT_NAMES, ValidationError, validate_names

logger = logging.getLogger(__name__)

# Load environment variables from a local .env file if present.
# __file__ is backend/app/core/config.py -> parents[2] is backend/
BACKEND_ENV = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(BACKEND_ENV)


def _env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean from the environment with sensible defaults."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: List[str] | None = None) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default or [])
    return [item.strip() for item in raw.split(",") if item.strip()]


def _default_roster() -> List[str]:
    """DEFAULT_ROSTER override, falling back to the built-in names when it is not a usable roster."""
    names = _env_list("DEFAULT_ROSTER", DEFAULT_NAMES)
    try:
        return validate_names(names)
    except ValidationError as exc:
        logger.warning("Ignoring DEFAULT_ROSTER (%s); using built-in names", exc)
        return list(DEFAULT_NAMES)


def _cors_origins() -> List[str]:
    """CORS_ORIGINS override, deduplicated; permissive (*) when unset so a static page can call the API."""
    merged = _env_list("CORS_ORIGINS", ["*"])
    seen = set()
    deduped = []
    for origin in merged:
        if origin in seen:
            continue
        seen.add(origin)
        deduped.append(origin)
    return deduped


@dataclass
class Settings:
    app_name: str = field(default_factory=lambda: os.getenv("APP_NAME", "Roll Call API"))
    api_prefix: str = field(default_factory=lambda: os.getenv("API_PREFIX", "/api"))
    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///rollcall_dev.db"))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", False))
    cors_origins: List[str] = field(default_factory=_cors_origins)
    default_roster: List[str] = field(default_factory=_default_roster)
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    store_path: Path = field(default_factory=lambda: Path(os.getenv("ROLLCALL_STORE_PATH", "rollcall_state.json")))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings instance sourced from environment variables."""
    return Settings()
