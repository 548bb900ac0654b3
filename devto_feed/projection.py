"""Ranked, capped view of the store used to render the feed."""

from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Iterable, List, Optional

from .models import FeedEntry, StoredRecord
from .state import as_utc, parse_timestamp

SOURCE_DOMAIN = "dev.to"


def published_time(record: StoredRecord) -> Optional[datetime]:
    return parse_timestamp(record.published_timestamp) or parse_timestamp(record.published_at)


def updated_time(record: StoredRecord) -> Optional[datetime]:
    """Return the later of the edit and publish times, if either parses."""

    candidates = [value for value in (parse_timestamp(record.edited_at), published_time(record)) if value]
    return max(candidates) if candidates else None


def _rank_key(record: StoredRecord):
    published = published_time(record)
    # Sorted in reverse: records without a publish time rank below dated ones.
    return (record.public_reactions_count, published is not None, published.timestamp() if published else 0.0)


def select_items(records: Iterable[StoredRecord], min_reactions: int, max_entries: int) -> List[StoredRecord]:
    """Filter by reactions, rank by reactions then publish time, keep the top ``max_entries``."""

    eligible = [record for record in records if record.public_reactions_count >= min_reactions]
    eligible.sort(key=_rank_key, reverse=True)
    return eligible[:max_entries]


def entry_id(record: StoredRecord, now: datetime, domain: str = SOURCE_DOMAIN) -> str:
    year = now.strftime("%Y")
    if record.id is not None:
        return f"tag:{domain},{year}:{record.id}"
    return record.canonical_url or f"tag:{domain},{year}:unknown"


def entry_link(record: StoredRecord) -> Optional[str]:
    return record.canonical_url or record.url or None


def summary_html(record: StoredRecord) -> str:
    reactions = (
        f"Reactions: public {record.public_reactions_count} / positive {record.positive_reactions_count}"
    )
    if record.user_name and record.user_username:
        author = (
            f'Author: <a href="https://dev.to/{escape(record.user_username)}">{escape(record.user_name)}</a>'
        )
    elif record.user_name:
        author = f"Author: {escape(record.user_name)}"
    else:
        author = "Author: unknown"
    published = record.published_timestamp or record.published_at or "unknown"
    tags = f"Tags: {escape(', '.join(record.tag_list))}" if record.tag_list else "Tags: none"
    description = f"Description: {escape(record.description)}" if record.description else "Description: none"
    return "<br/>".join([reactions, author, f"Published: {escape(published)}", tags, description])


def build_entries(records: Iterable[StoredRecord], now: datetime) -> List[FeedEntry]:
    """Turn ranked records into feed entries, dropping those with no link."""

    fallback = as_utc(now)
    entries = []
    for record in records:
        link = entry_link(record)
        if link is None:
            continue
        entries.append(
            FeedEntry(
                id=entry_id(record, now),
                title=record.title,
                link=link,
                updated=updated_time(record) or fallback,
                summary_html=summary_html(record),
            )
        )
    return entries


def feed_updated(entries: Iterable[FeedEntry], now: datetime) -> datetime:
    return max((entry.updated for entry in entries), default=as_utc(now))


__all__ = [
    "SOURCE_DOMAIN",
    "build_entries",
    "entry_id",
    "entry_link",
    "feed_updated",
    "published_time",
    "select_items",
    "summary_html",
    "updated_time",
]
