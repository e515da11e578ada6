"""Standard article transform helpers shared by every provider.

Text analysis here is deliberately lightweight: keyword rules for category,
tags and entities, and a small lexicon for sentiment. It runs over title plus
description only, since provider ``content`` is usually truncated.
"""

import logging
import math
import re
from datetime import datetime, timezone
from hashlib import sha256
from typing import Any
from urllib.parse import urlparse

from models.article import (
    CATEGORY_PRIORITY,
    ArticleCategory,
    ArticleEntities,
    ArticleMetadata,
    Sentiment,
    StandardArticle,
)
from sources.errors import ValidationError

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
MAX_TAGS = 20
MAX_TITLE_LENGTH = 500
MAX_SUMMARY_LENGTH = 1000
MAX_CONTENT_LENGTH = 50000
REMOVED_MARKER = "[Removed]"
SUPPORTED_LANGUAGES = frozenset({"en", "es", "fr", "de", "zh", "ja"})

# NewsAPI appends "... [+1234 chars]" to truncated content
_TRUNCATION_RE = re.compile(r"\s*…?\s*\[\+\d+ chars\]\s*$")
_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'\-]*")

CATEGORY_KEYWORDS: dict[ArticleCategory, tuple[str, ...]] = {
    ArticleCategory.POLITICS: (
        "election", "congress", "senate", "president", "government", "policy",
        "legislation", "democrat", "republican", "parliament", "vote", "campaign",
        "white house", "lawmakers", "regulation", "bill",
    ),
    ArticleCategory.BUSINESS: (
        "market", "stock", "earnings", "economy", "company", "revenue", "profit",
        "investor", "shares", "trade", "inflation", "federal reserve", "interest rate",
        "bank", "merger",
    ),
    ArticleCategory.TECHNOLOGY: (
        "technology", "tech", "software", "artificial intelligence", "ai",
        "cybersecurity", "startup", "semiconductor", "app", "data privacy", "cloud",
    ),
    ArticleCategory.HEALTH: (
        "health", "medical", "hospital", "vaccine", "disease", "fda", "drug",
        "medicare", "medicaid", "pandemic", "patients",
    ),
    ArticleCategory.WORLD: (
        "international", "foreign", "war", "united nations", "nato", "diplomat",
        "embassy", "sanctions", "treaty", "summit", "refugee",
    ),
}

_CATEGORY_PATTERNS = {
    category: re.compile(r"\b(" + "|".join(re.escape(k) for k in keywords) + r")\b", re.IGNORECASE)
    for category, keywords in CATEGORY_KEYWORDS.items()
}

KNOWN_COMPANIES = (
    "Microsoft", "Google", "Alphabet", "Apple", "Amazon", "Tesla", "Meta", "Facebook",
    "Nvidia", "OpenAI", "Intel", "IBM", "Netflix", "JPMorgan", "Goldman Sachs",
    "Boeing", "Pfizer", "Moderna", "ExxonMobil", "Walmart",
)
KNOWN_ORGANIZATIONS = (
    "Federal Reserve", "Congress", "Senate", "White House", "Supreme Court", "SEC",
    "FDA", "FTC", "EPA", "Pentagon", "NATO", "United Nations", "European Union",
    "European Commission", "IMF", "World Bank", "WHO", "OPEC", "Treasury",
)
KNOWN_LOCATIONS = (
    "United States", "Washington", "New York", "California", "Texas", "Canada",
    "Mexico", "Brazil", "United Kingdom", "UK", "London", "Europe", "Germany",
    "France", "Brussels", "China", "Beijing", "Japan", "India", "Russia", "Ukraine",
    "Israel", "Iran", "Saudi Arabia", "Taiwan", "South Korea", "Australia", "Africa",
)
_PERSON_RE = re.compile(
    r"\b(?:President|Senator|Sen\.|Rep\.|Governor|Gov\.|Secretary|Chairman|Chair|CEO|Minister|Judge)"
    r"\s+((?:[A-Z][a-z]+)(?:\s+[A-Z][a-z]+){0,2})"
)

POSITIVE_WORDS = frozenset({
    "gain", "gains", "growth", "rise", "rises", "surge", "surges", "record", "boost",
    "improve", "improves", "improved", "success", "successful", "win", "wins", "agreement",
    "approve", "approved", "approval", "breakthrough", "strong", "recovery", "optimism",
    "rally", "beat", "beats", "expand", "expands",
})
NEGATIVE_WORDS = frozenset({
    "loss", "losses", "fall", "falls", "drop", "drops", "decline", "declines", "crisis",
    "risk", "risks", "fear", "fears", "cut", "cuts", "fail", "fails", "failure", "lawsuit",
    "ban", "bans", "threat", "threatens", "weak", "recession", "slump", "plunge", "plunges",
    "concern", "concerns", "warning", "war", "attack",
})

# Tag vocabulary scanned in title + description (multi-word phrases first)
TAG_TERMS = (
    "interest rates", "monetary policy", "climate change", "artificial intelligence",
    "data privacy", "trade policy", "health insurance", "drug pricing", "immigration",
    "tariffs", "inflation", "regulation", "antitrust", "elections", "cybersecurity",
    "energy", "housing", "taxes", "sanctions", "earnings", "budget", "education",
)


def article_id(source: str, url: str) -> str:
    """``<source>-<sha256(url)[:16]>``; stable for the same URL."""
    return f"{source.lower()}-{sha256(url.encode()).hexdigest()[:16]}"


def strip_truncation_marker(text: str) -> str:
    return _TRUNCATION_RE.sub("", text or "").strip()


def categorize(text: str) -> ArticleCategory:
    """First category in priority order with a keyword hit, else General."""
    for category in CATEGORY_PRIORITY:
        pattern = _CATEGORY_PATTERNS.get(category)
        if pattern and pattern.search(text):
            return category
    return ArticleCategory.GENERAL


def _find_known(text: str, names: tuple[str, ...]) -> list[str]:
    return [n for n in names if re.search(rf"\b{re.escape(n)}\b", text)]


def extract_entities(text: str) -> ArticleEntities:
    people = list(dict.fromkeys(m.group(1) for m in _PERSON_RE.finditer(text)))
    return ArticleEntities(
        companies=_find_known(text, KNOWN_COMPANIES),
        organizations=_find_known(text, KNOWN_ORGANIZATIONS),
        people=people,
        locations=_find_known(text, KNOWN_LOCATIONS),
    )


def extract_tags(text: str, category: ArticleCategory) -> list[str]:
    """Lowercase tags, category first, at most 20."""
    lowered = text.lower()
    tags = [category.value.lower()]
    tags.extend(t for t in TAG_TERMS if re.search(rf"\b{re.escape(t)}\b", lowered))
    return list(dict.fromkeys(tags))[:MAX_TAGS]


def analyze_sentiment(text: str) -> Sentiment:
    words = [w.lower() for w in _WORD_RE.findall(text)]
    score = sum(w in POSITIVE_WORDS for w in words) - sum(w in NEGATIVE_WORDS for w in words)
    if score > 0:
        return Sentiment.POSITIVE
    if score < 0:
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def count_words(text: str) -> int:
    return len(text.split())


def reading_time(word_count: int) -> int:
    """Minutes at 200 words per minute, never below 1."""
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_date(value: str) -> bool:
    try:
        datetime.fromisoformat((value or "").replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def build_article(
    *,
    source: str,
    title: str,
    summary: str,
    content: str,
    url: str,
    date: str,
    author: str | None = None,
    publisher: str = "",
    image_url: str | None = None,
    language: str = "en",
    raw: dict[str, Any] | None = None,
) -> StandardArticle:
    """Assemble a StandardArticle, deriving category, tags, entities and metadata."""
    analysis_text = f"{title} {summary}"
    category = categorize(analysis_text)
    body = content or summary
    words = count_words(body)
    return StandardArticle(
        id=article_id(source, url),
        title=title[:MAX_TITLE_LENGTH],
        summary=summary[:MAX_SUMMARY_LENGTH],
        content=body[:MAX_CONTENT_LENGTH],
        category=category,
        source=source,
        source_url=url,
        date=date,
        author=author or None,
        publisher=publisher,
        image_url=image_url or None,
        tags=extract_tags(analysis_text, category),
        entities=extract_entities(analysis_text),
        metadata=ArticleMetadata(
            word_count=words,
            reading_time=reading_time(words),
            language=language,
            sentiment=analyze_sentiment(analysis_text),
        ),
        raw=raw or {},
    )


def validate_article(article: StandardArticle) -> list[str]:
    """Required-field checks. Returns error messages; empty means valid."""
    errors = []
    for name in ("id", "title", "source", "date"):
        if not getattr(article, name):
            errors.append(f"Missing required field: {name}")
    if not article.summary and not article.content:
        errors.append("Missing required field: summary or content")
    if article.title == REMOVED_MARKER:
        errors.append("Article was removed by the provider")
    if not article.is_fallback:
        if not is_valid_url(article.source_url):
            errors.append(f"Invalid sourceUrl: {article.source_url!r}")
        if article.date and not is_valid_date(article.date):
            errors.append(f"Invalid date: {article.date!r}")
    if article.metadata.language not in SUPPORTED_LANGUAGES:
        errors.append(f"Unsupported language: {article.metadata.language}")
    return errors


def ensure_valid(article: StandardArticle) -> StandardArticle:
    """Return the article unchanged or raise ValidationError."""
    errors = validate_article(article)
    if errors:
        raise ValidationError(f"Invalid article {article.id}", source=article.source, errors=errors)
    return article


def fallback_articles(source: str, errors: list[str] | None = None) -> list[StandardArticle]:
    """Single placeholder article shown when a provider is unavailable."""
    now = datetime.now(timezone.utc)
    article = StandardArticle(
        id=f"fallback-{source.lower()}-{int(now.timestamp())}",
        title=f"System Update - {source}",
        summary=f"Temporary issue with {source} data. Please check back later.",
        content=(
            f"We're experiencing technical difficulties with {source}. "
            "Our team is working to resolve this issue."
        ),
        category=ArticleCategory.GENERAL,
        source=source,
        date=now.isoformat(),
        tags=["system", "fallback"],
        metadata=ArticleMetadata(word_count=50, reading_time=1),
        raw={"error": True, "source": source, "errors": list(errors or [])},
        is_fallback=True,
    )
    logger.warning("Fallback articles emitted | source=%s errors=%d", source, len(errors or []))
    return [article]
