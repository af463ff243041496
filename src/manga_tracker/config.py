"""Configuration management using Pydantic models."""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .constants import (
    ANILIST_ENDPOINT,
    CORS_PROXY_URL,
    DEFAULT_CACHE_MAX_AGE_HOURS,
    DEFAULT_COMPRESSED_MAX_DIMENSION,
    DEFAULT_COMPRESSED_MAX_KB,
    DEFAULT_COMPRESSION_QUALITY,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_STATS_POLL_MINUTES,
    FILE_HOST_UPLOAD_URL,
)

logger = logging.getLogger(__name__)


# Placeholder values that indicate unconfigured credentials
INVALID_PLACEHOLDERS = {
    "YOUR_USERNAME_HERE",
    "YOUR_PASSWORD_HERE",
    "",
}

PASSWORD_ENV_VAR = "MANGA_TRACKER_PASSWORD"


class AniListConfig(BaseModel):
    """AniList statistics source."""
    username: Optional[str] = None
    endpoint: str = ANILIST_ENDPOINT


class FileHostConfig(BaseModel):
    """Anonymous file host used to re-host cover images."""
    upload_url: str = FILE_HOST_UPLOAD_URL
    proxy_url: str = CORS_PROXY_URL
    proxy_fallback: bool = True


class ImageConfig(BaseModel):
    """Compression targets for the compressed cover variant."""
    max_size_kb: int = Field(default=DEFAULT_COMPRESSED_MAX_KB, gt=0)
    max_dimension: int = Field(default=DEFAULT_COMPRESSED_MAX_DIMENSION, gt=0)
    quality: float = Field(default=DEFAULT_COMPRESSION_QUALITY, gt=0, le=1)


class StatsConfig(BaseModel):
    """Remote stats caching."""
    cache_file: str = "data/anilist_cache.json"
    max_age_hours: float = Field(default=DEFAULT_CACHE_MAX_AGE_HOURS, gt=0)
    poll_interval_minutes: int = Field(default=DEFAULT_STATS_POLL_MINUTES, gt=0)


class AuthConfig(BaseModel):
    """Credentials of the single editor account."""
    username: Optional[str] = None
    password: Optional[str] = None


class Config(BaseModel):
    """Root configuration model."""
    anilist: AniListConfig = Field(default_factory=AniListConfig)
    file_host: FileHostConfig = Field(default_factory=FileHostConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    stats: StatsConfig = Field(default_factory=StatsConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    database_url: str = "sqlite:///data/manga_tracker.db"
    http_timeout_seconds: float = Field(default=DEFAULT_HTTP_TIMEOUT_SECONDS, gt=0)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()


def get_config_path() -> Path:
    """Get config file path based on environment."""
    if os.path.exists("/.dockerenv"):
        return Path("/app/data/config.yaml")
    return Path("data/config.yaml")


class Settings:
    """Application settings loaded from config.yaml."""

    def __init__(self, config_path: Optional[Path] = None):
        """Load and validate configuration."""
        self.config_path = Path(config_path) if config_path else get_config_path()

        if not self.config_path.exists():
            self._create_config_template()

        self._load_config()

    def _create_config_template(self) -> None:
        """Create config template from example."""
        example_path = Path("config.example.yaml")
        if example_path.exists():
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy(example_path, self.config_path)
            logger.info(f"Created config template: {self.config_path}")
            logger.info("Please edit the config file with your credentials")

    def _load_config(self) -> None:
        """Load configuration from YAML using Pydantic."""
        raw_config = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    raw_config = yaml.safe_load(f) or {}
            except Exception as e:
                logger.error(f"Failed to load config: {e}")
                raise
        else:
            logger.warning(f"No config file at {self.config_path}, using defaults")

        self.config = Config(**raw_config)
        logger.debug(f"Loaded configuration from {self.config_path}")

        username = self.config.anilist.username
        self.anilist_username = None if (username or "") in INVALID_PLACEHOLDERS else username
        self.anilist_endpoint = self.config.anilist.endpoint

        self.upload_url = self.config.file_host.upload_url
        self.proxy_url = self.config.file_host.proxy_url
        self.proxy_fallback = self.config.file_host.proxy_fallback

        self.image_max_bytes = self.config.images.max_size_kb * 1024
        self.image_max_dimension = self.config.images.max_dimension
        self.image_quality = self.config.images.quality

        self.cache_file = Path(self.config.stats.cache_file)
        self.cache_max_age_seconds = self.config.stats.max_age_hours * 3600
        self.stats_poll_minutes = self.config.stats.poll_interval_minutes

        self.auth_username = self.config.auth.username
        self.auth_password = os.environ.get(PASSWORD_ENV_VAR) or self.config.auth.password

        self.database_url = self.config.database_url
        self.http_timeout = self.config.http_timeout_seconds
        self.log_level = self.config.log_level


def validate_auth_config(settings: Settings) -> tuple[bool, list[str]]:
    """
    Validate that editor credentials are not placeholder values.
    Returns (is_valid, list_of_invalid_fields).
    """
    invalid = []
    if (settings.auth_username or "") in INVALID_PLACEHOLDERS:
        invalid.append("auth.username")
    if (settings.auth_password or "") in INVALID_PLACEHOLDERS:
        invalid.append("auth.password")
    return len(invalid) == 0, invalid


# Singleton cache for settings
_SETTINGS_SINGLETON = None

def get_settings() -> Settings:
    """Get (cached) application settings singleton."""
    global _SETTINGS_SINGLETON
    if _SETTINGS_SINGLETON is None:
        _SETTINGS_SINGLETON = Settings()
    return _SETTINGS_SINGLETON

def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload of application settings singleton."""
    global _SETTINGS_SINGLETON
    _SETTINGS_SINGLETON = Settings(config_path)
    return _SETTINGS_SINGLETON
