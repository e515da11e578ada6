"""NewsAPI provider.

Calls ``GET {base_url}/everything`` with the key in the ``X-Api-Key`` header
and maps failures onto the provider error taxonomy:

    missing key           ConfigurationError (never sent)
    HTTP 429 / rateLimited  RateLimitError (Retry-After honoured)
    other non-2xx         ProviderError(status)
    body status "error"   ProviderError with NewsAPI's error code
    timeout               RequestTimeoutError
    connection failure    NetworkError

Records NewsAPI has taken down come back titled "[Removed]"; transform drops
them along with records lacking a title or a usable URL.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from models.article import StandardArticle
from models.query import ProviderQuery
from sources.errors import (
    ConfigurationError,
    NetworkError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
)
from sources.schema import REMOVED_MARKER, build_article, is_valid_url, strip_truncation_marker
from sources.utils import USER_AGENT, create_ssl_context

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://newsapi.org/v2"
SOURCE_NAME = "NewsAPI"


def _retry_after(headers: Any) -> float | None:
    value = headers.get("Retry-After") if headers else None
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class NewsAPIProvider:
    """Article provider backed by NewsAPI's ``/everything`` endpoint.

    Args:
        api_key: NewsAPI key; fetch raises ConfigurationError when empty
        base_url: API root (no trailing slash)
        timeout: Per-request timeout in seconds
        session: Optional shared aiohttp session; one is created per request
                 otherwise
    """

    name = "newsapi"

    def __init__(
        self,
        api_key: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/everything"

    async def fetch(self, query: ProviderQuery) -> list[dict[str, Any]]:
        """Fetch raw article records for one query."""
        if not self.api_key:
            raise ConfigurationError("NEWSAPI_API_KEY is not set", source=self.name)

        params = query.to_params()
        logger.debug("NewsAPI request | kind=%s q_len=%d page_size=%d", query.kind.value, len(query.q), query.page_size)

        try:
            if self._session is not None:
                payload = await self._request(self._session, params)
            else:
                async with aiohttp.ClientSession() as session:
                    payload = await self._request(session, params)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(f"NewsAPI request timed out after {self.timeout}s", source=self.name) from e
        except aiohttp.ClientResponseError as e:
            raise ProviderError(f"NewsAPI HTTP {e.status}: {e.message}", source=self.name, status=e.status) from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"NewsAPI connection failed: {e}", source=self.name) from e

        records = payload.get("articles") or []
        if not isinstance(records, list):
            raise ProviderError("NewsAPI returned a malformed articles list", source=self.name)
        articles = [r for r in records if isinstance(r, dict)]
        if len(articles) < len(records):
            logger.warning("Skipping malformed records | kind=%s count=%d", query.kind.value, len(records) - len(articles))
        logger.info(
            "NewsAPI response | kind=%s total=%s returned=%d",
            query.kind.value, payload.get("totalResults"), len(articles),
        )
        return articles

    async def _request(self, session: aiohttp.ClientSession, params: dict[str, Any]) -> dict[str, Any]:
        async with session.get(
            self.endpoint,
            params=params,
            headers={"X-Api-Key": self.api_key, "User-Agent": USER_AGENT},
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            ssl=create_ssl_context(),
        ) as resp:
            try:
                payload = await resp.json(content_type=None)
            except ValueError:
                payload = None

            if resp.status == 429:
                raise RateLimitError(
                    "NewsAPI rate limit exceeded", source=self.name, retry_after=_retry_after(resp.headers)
                )
            if resp.status >= 400:
                message = payload.get("message", resp.reason) if isinstance(payload, dict) else resp.reason
                raise ProviderError(f"NewsAPI HTTP {resp.status}: {message}", source=self.name, status=resp.status)
            if not isinstance(payload, dict):
                raise ProviderError("NewsAPI returned a malformed body", source=self.name, status=resp.status)
            if payload.get("status") == "error":
                code = payload.get("code", "unknown")
                if code == "rateLimited":
                    raise RateLimitError(f"NewsAPI {code}", source=self.name)
                raise ProviderError(f"NewsAPI error {code}: {payload.get('message', '')}", source=self.name, status=resp.status)
            return payload

    def transform(self, raw: dict[str, Any], language: str = "en") -> StandardArticle | None:
        """Convert a NewsAPI record; None for removed or unusable records."""
        if not isinstance(raw, dict):
            return None
        title = (raw.get("title") or "").strip()
        url = (raw.get("url") or "").strip()
        if not title or title == REMOVED_MARKER:
            return None
        if not is_valid_url(url):
            logger.debug("Dropping record with invalid url | title=%s", title[:60])
            return None

        source = raw.get("source") or {}
        return build_article(
            source=SOURCE_NAME,
            title=title,
            summary=(raw.get("description") or "").strip(),
            content=strip_truncation_marker(raw.get("content") or ""),
            url=url,
            date=raw.get("publishedAt") or "",
            author=raw.get("author"),
            publisher=(source.get("name") or "") if isinstance(source, dict) else "",
            image_url=raw.get("urlToImage"),
            language=language,
            raw=raw,
        )
