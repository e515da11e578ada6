"""Article providers and the standard article transform.

NewsAPIProvider:
    Fetches ``/everything`` results and transforms them to StandardArticle.

with_retry / RetryPolicy:
    Bounded exponential backoff around provider calls.

fallback_articles:
    Placeholder article returned when a provider is unavailable.
"""

from sources.base import ArticleProvider
from sources.errors import (
    BriefingError,
    ConfigurationError,
    NetworkError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    RetriesExhaustedError,
    ValidationError,
    is_retryable,
)
from sources.newsapi import NewsAPIProvider
from sources.retry import RetryPolicy, backoff_wait, with_retry
from sources.schema import ensure_valid, fallback_articles, validate_article

__all__ = [
    "ArticleProvider",
    "NewsAPIProvider",
    "BriefingError",
    "ProviderError",
    "RateLimitError",
    "RequestTimeoutError",
    "NetworkError",
    "ValidationError",
    "ConfigurationError",
    "RetriesExhaustedError",
    "is_retryable",
    "RetryPolicy",
    "backoff_wait",
    "with_retry",
    "ensure_valid",
    "fallback_articles",
    "validate_article",
]
