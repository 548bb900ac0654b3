from datetime import datetime, timezone
from typing import List

import pytest

from devto_feed.config import Config
from devto_feed.fetchers import ArticleFetcher
from devto_feed.models import Author, CandidateRecord, StoredRecord

NOW = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)


def make_candidate(**overrides) -> CandidateRecord:
    values = dict(
        title="An article",
        id=1,
        url="https://dev.to/alice/an-article",
        canonical_url="https://dev.to/alice/an-article",
        description="Something useful",
        published_timestamp="2024-05-08T09:00:00Z",
        published_at="2024-05-08T09:00:00Z",
        edited_at=None,
        public_reactions_count=120,
        positive_reactions_count=118,
        tag_list="python, testing",
        user=Author(name="Alice", username="alice"),
    )
    values.update(overrides)
    return CandidateRecord(**values)


def make_record(**overrides) -> StoredRecord:
    values = dict(
        key="1",
        id=1,
        title="An article",
        url="https://dev.to/alice/an-article",
        canonical_url="https://dev.to/alice/an-article",
        published_timestamp="2024-05-08T09:00:00Z",
        public_reactions_count=120,
        positive_reactions_count=118,
        tag_list=["python"],
        last_seen=NOW.isoformat(),
    )
    values.update(overrides)
    return StoredRecord(**values)


class FakeFetcher(ArticleFetcher):
    name = "fake"

    def __init__(self, articles: List[CandidateRecord]) -> None:
        self.articles = articles
        self.calls = 0

    def fetch(self, config: Config) -> List[CandidateRecord]:
        self.calls += 1
        return list(self.articles)


@pytest.fixture
def now() -> datetime:
    return NOW
