"""
Runtime configuration

Settings are read from the environment, optionally seeded from a .env file.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv


def load_dotenv_if_present(path: Union[str, Path] = ".env") -> None:
    """Load environment variables from a .env file if it exists."""
    dotenv_path = Path(path)
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


def configure_logging(default_level: str = "INFO") -> None:
    """Configure root logging level from LOG_LEVEL env (default INFO)."""
    level_name = os.getenv("LOG_LEVEL", default_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level)


@dataclass(frozen=True)
class Settings:
    """
    Ingestion settings.

    Attributes:
        api_url: Base URL of the hosted backend (auth, storage, REST)
        api_key: Project API key sent with every backend request
        photos_bucket: Storage bucket receiving uploaded photos
        metadata_timeout: Upper bound in seconds for EXIF extraction
        http_timeout: Timeout in seconds for backend HTTP calls
        max_upload_mb: Largest accepted upload, in megabytes
    """
    api_url: Optional[str] = None
    api_key: Optional[str] = None
    photos_bucket: str = "photos"
    metadata_timeout: float = 5.0
    http_timeout: float = 30.0
    max_upload_mb: int = 50

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_url=os.getenv("JOURNEY_API_URL"),
            api_key=os.getenv("JOURNEY_API_KEY"),
            photos_bucket=os.getenv("JOURNEY_PHOTOS_BUCKET", "photos"),
            metadata_timeout=float(os.getenv("JOURNEY_METADATA_TIMEOUT", "5.0")),
            http_timeout=float(os.getenv("JOURNEY_HTTP_TIMEOUT", "30.0")),
            max_upload_mb=int(os.getenv("JOURNEY_MAX_UPLOAD_MB", "50")),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded once."""
    load_dotenv_if_present()
    return Settings.from_env()
