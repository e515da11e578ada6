"""Configuration management for the Stakewire briefing pipeline.

All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Provider:
        NEWSAPI_API_KEY: NewsAPI key (required for fetching)
        NEWSAPI_BASE_URL: API root (default: https://newsapi.org/v2)
        NEWSAPI_TIMEOUT: Per-request timeout in seconds

    Retry Behavior:
        MAX_RETRIES: Attempts per provider call
        RETRY_BASE_DELAY: Base delay for exponential backoff (seconds)
        RETRY_MAX_DELAY: Backoff ceiling (seconds)
        RETRY_JITTER: Upper bound of random jitter added to each delay
        REQUEST_DELAY_SECONDS: Courtesy delay between a user's queries

    Pipeline Behavior:
        CACHE_TTL: Seconds fetched results stay cached
        SIMILARITY_THRESHOLD: Minimum similarity for two users to share a query
        MAX_WORKERS: Profiles processed concurrently in a batch
        MAX_ARTICLES_PER_USER: Cap on articles in one briefing
        LANGUAGE: Article language requested from the provider

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing
        LOGFIRE_TOKEN: Logfire write token

    Logging:
        LOG_DIR: Directory for log files
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from sources.retry import RetryPolicy


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default."""
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Truthy: '1', 'true', 'yes', 'on'. Falsy: '0', 'false', 'no', 'off'.
    Anything else returns the default.
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


SUPPORTED_LANGUAGES = ("en", "es", "fr", "de", "zh", "ja")


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Provider ===
    newsapi_api_key: str = ""  # NEWSAPI_API_KEY
    newsapi_base_url: str = "https://newsapi.org/v2"  # NEWSAPI_BASE_URL
    newsapi_timeout: float = 30.0  # NEWSAPI_TIMEOUT - seconds

    # === Retry Behavior ===
    max_retries: int = 3  # MAX_RETRIES - attempts per provider call
    retry_base_delay: float = 1.0  # RETRY_BASE_DELAY
    retry_max_delay: float = 30.0  # RETRY_MAX_DELAY
    retry_jitter: float = 1.0  # RETRY_JITTER
    request_delay: float = 1.0  # REQUEST_DELAY_SECONDS - between a user's queries

    # === Pipeline Behavior ===
    cache_ttl: int = 3600  # CACHE_TTL - seconds
    similarity_threshold: float = 0.7  # SIMILARITY_THRESHOLD
    max_workers: int = 4  # MAX_WORKERS - concurrent profiles in a batch
    max_articles_per_user: int = 100  # MAX_ARTICLES_PER_USER
    language: str = "en"  # LANGUAGE

    # === Logging Configuration ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR
    log_level: str = "INFO"  # LOG_LEVEL
    log_backup_count: int = 30  # LOG_BACKUP_COUNT
    log_max_bytes: int = 0  # LOG_MAX_BYTES - 0 = time-based rotation
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json'

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE
    logfire_token: str = ""  # LOGFIRE_TOKEN

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            newsapi_api_key=_env("NEWSAPI_API_KEY"),
            newsapi_base_url=_env("NEWSAPI_BASE_URL", "https://newsapi.org/v2"),
            newsapi_timeout=_env_float("NEWSAPI_TIMEOUT", 30.0),
            max_retries=_env_int("MAX_RETRIES", 3),
            retry_base_delay=_env_float("RETRY_BASE_DELAY", 1.0),
            retry_max_delay=_env_float("RETRY_MAX_DELAY", 30.0),
            retry_jitter=_env_float("RETRY_JITTER", 1.0),
            request_delay=_env_float("REQUEST_DELAY_SECONDS", 1.0),
            cache_ttl=_env_int("CACHE_TTL", 3600),
            similarity_threshold=_env_float("SIMILARITY_THRESHOLD", 0.7),
            max_workers=_env_int("MAX_WORKERS", 4),
            max_articles_per_user=_env_int("MAX_ARTICLES_PER_USER", 100),
            language=_env("LANGUAGE", "en").lower(),
            log_dir=Path(_env("LOG_DIR", "log")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
        )

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
            jitter=self.retry_jitter,
        )

    def validate(self) -> str | None:
        """Validate value ranges.

        A missing NEWSAPI_API_KEY is not an error here: the provider raises
        ConfigurationError on use and the pipeline falls back, so query
        planning works without a key.

        Returns:
            Error message string if invalid, None if valid.
        """
        if self.language not in SUPPORTED_LANGUAGES:
            return f"Invalid LANGUAGE '{self.language}' - must be one of {', '.join(SUPPORTED_LANGUAGES)}"
        if self.newsapi_timeout <= 0:
            return "NEWSAPI_TIMEOUT must be positive"
        if self.max_retries < 1:
            return "MAX_RETRIES must be at least 1"
        if self.retry_base_delay < 0 or self.retry_max_delay < 0 or self.retry_jitter < 0:
            return "Retry delays must be non-negative"
        if self.request_delay < 0:
            return "REQUEST_DELAY_SECONDS must be non-negative"
        if self.cache_ttl <= 0:
            return "CACHE_TTL must be positive"
        if not 0.0 <= self.similarity_threshold <= 1.0:
            return "SIMILARITY_THRESHOLD must be between 0 and 1"
        if self.max_workers <= 0:
            return "MAX_WORKERS must be positive"
        if self.max_articles_per_user <= 0:
            return "MAX_ARTICLES_PER_USER must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
