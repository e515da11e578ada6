"""Article provider interface.

A provider turns a ProviderQuery into raw records and each raw record into a
StandardArticle. New providers add an implementation; nothing in the
pipeline branches on provider type.
"""

from typing import Any, Protocol, runtime_checkable

from models.article import StandardArticle
from models.query import ProviderQuery


@runtime_checkable
class ArticleProvider(Protocol):
    """Capability interface implemented by every article source."""

    name: str

    async def fetch(self, query: ProviderQuery) -> list[dict[str, Any]]:
        """Fetch raw provider records for one query.

        Raises:
            ConfigurationError: Provider is not configured (fatal, not retried)
            BriefingError: Any other provider failure
        """
        ...

    def transform(self, raw: dict[str, Any], language: str = "en") -> StandardArticle | None:
        """Convert one raw record, or return None if the record is unusable."""
        ...
