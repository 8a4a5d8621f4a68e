"""
Configuration helpers for the dispatch backend.

Settings are read once from the environment so that drivers/services do not
fetch os.environ directly. Tests call ``get_settings.cache_clear()`` after
changing variables.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    storage_policy: str
    data_dir: Path
    database_url: str
    blob_account_name: str
    blob_account_key: str
    blob_container: str
    blob_max_write_attempts: int
    lock_timeout_seconds: float
    telegram_bot_token: str
    telegram_api_base: str
    notify_timeout_seconds: int
    log_level: str
    log_file: str

    @property
    def relational_configured(self) -> bool:
        return bool(self.database_url)

    @property
    def blob_configured(self) -> bool:
        return bool(self.blob_account_name and self.blob_account_key)


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    data_dir = (os.getenv("DATA_DIR") or "").strip()
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        storage_policy=(os.getenv("PRIMARY_STORAGE") or "local").strip().lower(),
        data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
        database_url=(os.getenv("DATABASE_URL") or "").strip(),
        blob_account_name=os.getenv("BLOB_ACCOUNT_NAME", ""),
        blob_account_key=os.getenv("BLOB_ACCOUNT_KEY", ""),
        blob_container=os.getenv("BLOB_CONTAINER", "data"),
        blob_max_write_attempts=max(1, _int(os.getenv("BLOB_MAX_WRITE_ATTEMPTS", "3"), 3)),
        lock_timeout_seconds=_float(os.getenv("LOCK_TIMEOUT_SECONDS", "5"), 5.0),
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        telegram_api_base=os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org").rstrip("/"),
        notify_timeout_seconds=_int(os.getenv("NOTIFY_TIMEOUT_SECONDS", "10"), 10),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        log_file=os.getenv("LOG_FILE", ""),
    )
