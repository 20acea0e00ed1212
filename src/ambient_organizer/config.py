"""Configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path

APP_DIR = Path.home() / ".ambient-organizer"
DEFAULT_DB = APP_DIR / "organizer.db"
DEFAULT_KNOWLEDGE_ROOT = APP_DIR / "knowledge"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class OrganizerConfig:
    """Tunables for the engine. Times are in seconds."""
    db_path: Path = DEFAULT_DB
    knowledge_root: Path = DEFAULT_KNOWLEDGE_ROOT
    debounce_seconds: float = 2.0
    suggestion_timeout: float = 15.0
    pause_delay: float = 3.0
    relevance_interval: float = 300.0
    relationship_interval: float = 3600.0
    clamp_weights: bool = False


def load_config() -> OrganizerConfig:
    """Load configuration from environment variables with defaults."""
    return OrganizerConfig(
        db_path=Path(os.getenv("AMBIENT_ORGANIZER_DB", str(DEFAULT_DB))).expanduser(),
        knowledge_root=Path(
            os.getenv("AMBIENT_ORGANIZER_KNOWLEDGE_ROOT", str(DEFAULT_KNOWLEDGE_ROOT))
        ).expanduser(),
        debounce_seconds=float(os.getenv("AMBIENT_ORGANIZER_DEBOUNCE_SECONDS", "2.0")),
        suggestion_timeout=float(os.getenv("AMBIENT_ORGANIZER_SUGGESTION_TIMEOUT", "15")),
        pause_delay=float(os.getenv("AMBIENT_ORGANIZER_PAUSE_DELAY", "3")),
        relevance_interval=float(os.getenv("AMBIENT_ORGANIZER_RELEVANCE_INTERVAL", "300")),
        relationship_interval=float(os.getenv("AMBIENT_ORGANIZER_RELATIONSHIP_INTERVAL", "3600")),
        clamp_weights=_env_bool("AMBIENT_ORGANIZER_CLAMP_WEIGHTS", False),
    )
