"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest

from config import Config
from sources.retry import RetryPolicy

ENV_KEYS = (
    "NEWSAPI_API_KEY", "NEWSAPI_BASE_URL", "NEWSAPI_TIMEOUT", "MAX_RETRIES",
    "RETRY_BASE_DELAY", "RETRY_MAX_DELAY", "RETRY_JITTER", "REQUEST_DELAY_SECONDS",
    "CACHE_TTL", "SIMILARITY_THRESHOLD", "MAX_WORKERS", "MAX_ARTICLES_PER_USER",
    "LANGUAGE", "LOG_DIR", "LOG_LEVEL", "LOG_BACKUP_COUNT", "LOG_MAX_BYTES",
    "LOG_FORMAT", "ENABLE_LOGFIRE", "LOGFIRE_TOKEN",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestLoad:

    def test_defaults(self, clean_env):
        config = Config.load()

        assert config.newsapi_api_key == ""
        assert config.newsapi_base_url == "https://newsapi.org/v2"
        assert config.max_retries == 3
        assert config.request_delay == 1.0
        assert config.cache_ttl == 3600
        assert config.similarity_threshold == 0.7
        assert config.language == "en"
        assert config.log_dir == Path("log")
        assert config.enable_logfire is False
        assert config.validate() is None

    def test_overrides(self, clean_env):
        clean_env.setenv("NEWSAPI_API_KEY", "abc123")
        clean_env.setenv("MAX_WORKERS", "8")
        clean_env.setenv("SIMILARITY_THRESHOLD", "0.55")
        clean_env.setenv("LANGUAGE", "FR")
        clean_env.setenv("LOG_LEVEL", "debug")
        clean_env.setenv("ENABLE_LOGFIRE", "yes")

        config = Config.load()

        assert config.newsapi_api_key == "abc123"
        assert config.max_workers == 8
        assert config.similarity_threshold == 0.55
        assert config.language == "fr"
        assert config.log_level == "DEBUG"
        assert config.enable_logfire is True

    @pytest.mark.parametrize("key,value", [("MAX_RETRIES", "three"), ("CACHE_TTL", "1.5"), ("RETRY_JITTER", "lots")])
    def test_unparseable_numbers_raise(self, clean_env, key, value):
        clean_env.setenv(key, value)
        with pytest.raises(ValueError, match=key):
            Config.load()

    def test_unknown_bool_uses_default(self, clean_env):
        clean_env.setenv("ENABLE_LOGFIRE", "maybe")
        assert Config.load().enable_logfire is False


class TestValidate:

    @pytest.mark.parametrize("overrides,fragment", [
        ({"language": "xx"}, "LANGUAGE"),
        ({"newsapi_timeout": 0}, "NEWSAPI_TIMEOUT"),
        ({"max_retries": 0}, "MAX_RETRIES"),
        ({"retry_jitter": -1}, "Retry delays"),
        ({"request_delay": -0.5}, "REQUEST_DELAY_SECONDS"),
        ({"cache_ttl": 0}, "CACHE_TTL"),
        ({"similarity_threshold": 1.2}, "SIMILARITY_THRESHOLD"),
        ({"max_workers": 0}, "MAX_WORKERS"),
        ({"max_articles_per_user": 0}, "MAX_ARTICLES_PER_USER"),
        ({"log_level": "LOUD"}, "LOG_LEVEL"),
        ({"log_format": "xml"}, "LOG_FORMAT"),
    ])
    def test_invalid_values(self, overrides, fragment):
        assert fragment in Config(**overrides).validate()

    def test_missing_api_key_is_valid(self):
        """Planning works without a key; fetching falls back."""
        assert Config(newsapi_api_key="").validate() is None

    def test_retry_policy(self):
        config = Config(max_retries=5, retry_base_delay=0.5, retry_max_delay=10, retry_jitter=0)
        assert config.retry_policy == RetryPolicy(max_attempts=5, base_delay=0.5, max_delay=10, jitter=0)
