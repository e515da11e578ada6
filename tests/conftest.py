"""Shared fixtures: sample quiz profiles, a fixed clock and a fake provider."""

from datetime import datetime, timezone

import pytest

from config import Config
from sources.newsapi import NewsAPIProvider

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)

POWER_PROFILE = {
    "id": "u-power",
    "name": "Sarah Thompson",
    "profession": "Software Engineer",
    "location": "San Francisco, CA",
    "expertise": "Expert",
    "timeAvailable": "20-30 minutes",
    "regions": ["North America", "Europe"],
    "topics": ["Technology Regulation", "Economic Policy", "Climate Policy"],
    "career": {"industry": "Technology", "company": "Google", "role": "Senior Engineer"},
    "investments": {"hasPortfolio": True, "details": "Tech stocks, index funds, some crypto"},
    "personal": {"nationality": "US Citizen"},
}

TOPIC_PROFILE = {
    "id": "u-topic",
    "expertise": "Beginner",
    "topics": ["Immigration", "Defense"],
}


def raw_article(index: int, **overrides) -> dict:
    """A NewsAPI ``/everything`` record."""
    record = {
        "source": {"id": "reuters", "name": "Reuters"},
        "author": "Jane Doe",
        "title": f"Senate committee advances data privacy bill {index}",
        "description": "Lawmakers moved forward with new rules for technology companies.",
        "url": f"https://www.reuters.com/world/us/privacy-bill-{index}",
        "urlToImage": f"https://www.reuters.com/images/{index}.jpg",
        "publishedAt": "2024-05-09T14:30:00Z",
        "content": "Lawmakers on Thursday advanced a bill that would limit data collection… [+2345 chars]",
    }
    record.update(overrides)
    return record


class FakeNewsAPI(NewsAPIProvider):
    """NewsAPI transform with scripted fetch results.

    ``outcomes`` is consumed one item per fetch call; an exception instance is
    raised, anything else is returned. When exhausted, ``default`` is used.
    """

    def __init__(self, default=None, outcomes=None):
        super().__init__(api_key="test-key")
        self.default = default if default is not None else []
        self.outcomes = list(outcomes or [])
        self.calls = []

    async def fetch(self, query):
        self.calls.append(query)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return list(outcome)


class SleepRecorder:
    """Drop-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def power_profile():
    return dict(POWER_PROFILE)


@pytest.fixture
def topic_profile():
    return dict(TOPIC_PROFILE)


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return Config(request_delay=1.0, max_retries=3, max_workers=2, retry_jitter=0.0)
