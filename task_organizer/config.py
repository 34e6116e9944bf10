"""Configuration helpers for the Task Organizer service."""
from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_DATA_DIR = Path(__file__).resolve().parents[1] / "data"


class ConfigError(RuntimeError):
    """Raised when required configuration is missing."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the service."""

    firebase_api_key: str
    firebase_project_id: Optional[str] = None
    tasks_collection: str = "tasks"
    environment: str = "local"
    force_file_store: bool = False
    data_dir: Path = DEFAULT_DATA_DIR
    log_level: str = "INFO"
    allowed_frontend: Optional[str] = None


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip() == "1"


def load_settings(
    *,
    api_key_var: str = "TASKORG_FIREBASE_API_KEY",
    fallback_api_key_var: Optional[str] = "FIREBASE_API_KEY",
) -> Settings:
    """Load settings from environment variables (and a local .env file).

    Args:
        api_key_var: Primary env var name for the Firebase Web API key.
        fallback_api_key_var: Optional alternate env var for the same key.

    Returns:
        Settings with the resolved values.

    Raises:
        ConfigError: if the API key is missing and the file store is not forced.
    """

    load_dotenv()

    force_file = _flag("TASKORG_TASK_STORE_FORCE_FILE")

    api_key = os.getenv(api_key_var)
    if not api_key and fallback_api_key_var:
        api_key = os.getenv(fallback_api_key_var)

    if not api_key and not force_file:
        raise ConfigError(
            "Missing Firebase API key. Export TASKORG_FIREBASE_API_KEY or "
            "set TASKORG_TASK_STORE_FORCE_FILE=1 for local development."
        )

    project_id = (
        os.getenv("TASKORG_FIREBASE_PROJECT_ID")
        or os.getenv("GOOGLE_CLOUD_PROJECT")
        or None
    )
    data_dir = os.getenv("TASKORG_DATA_DIR", "").strip()

    return Settings(
        firebase_api_key=(api_key or "").strip(),
        firebase_project_id=project_id,
        tasks_collection=os.getenv("TASKORG_TASKS_COLLECTION", "tasks"),
        environment=os.getenv("TASKORG_ENV", "local"),
        force_file_store=force_file,
        data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
        log_level=os.getenv("TASKORG_LOG_LEVEL", "INFO").upper(),
        allowed_frontend=os.getenv("TASKORG_ALLOWED_FRONTEND", "").strip() or None,
    )
