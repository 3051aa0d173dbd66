"""Configuration via environment variables."""

import logging
from pathlib import Path

from pydantic_settings import BaseSettings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # Encrypted record store
    age_recipient: str = ""
    age_identity: str = ""
    data_store_path: Path = Path("data/store")
    data_audit_path: Path = Path("data/audit")

    # Offline cache: reads keep working, writes are refused
    offline_mode: bool = False

    # Retry policy for recoverable store errors
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0

    # Locale
    timezone: str = "Europe/Warsaw"

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


def configure_logging(config: Settings | None = None) -> logging.Logger:
    """Attach a console handler to the ``habitlog`` logger at the configured level."""
    cfg = config or settings
    root = logging.getLogger("habitlog")
    root.setLevel(cfg.log_level.upper())
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    return root
