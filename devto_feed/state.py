"""Persisted article history: identity, merge, retention and JSON storage.

The store file is owned by a single process for the duration of one run.
Nothing here locks it: the tool assumes an external scheduler that never
starts two runs at once.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from dateutil import parser as date_parser

from .errors import StoreReadError, StoreWriteError
from .models import CandidateRecord, StoredRecord

LOGGER = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return as_utc(value).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; anything without a UTC offset is rejected."""

    if not value:
        return None
    try:
        parsed = date_parser.isoparse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        return None
    return parsed


def record_key(candidate: CandidateRecord) -> Optional[str]:
    """Return the identity key for ``candidate``, or ``None`` when it has none."""

    if candidate.id is not None:
        return str(candidate.id)
    # Without a numeric id the canonical URL is the only stable handle.
    return candidate.canonical_url or None


def parse_tag_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [tag.strip() for tag in value.split(",") if tag.strip()]


class StateStore:
    """JSON-backed store of articles keyed by identity."""

    def __init__(
        self,
        items: Optional[Dict[str, StoredRecord]] = None,
        path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.items: Dict[str, StoredRecord] = dict(items or {})
        self.path = path
        self.logger = logger or LOGGER

    def __len__(self) -> int:
        return len(self.items)

    @classmethod
    def load(cls, path: Path, logger: Optional[logging.Logger] = None) -> "StateStore":
        """Load the store at ``path``; a missing file yields an empty store."""

        store = cls(path=path, logger=logger)
        if not path.exists():
            store.logger.info("No state file at %s, starting empty", path)
            return store

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise StoreReadError(f"Could not read state file {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StoreReadError(f"Could not parse state file {path}: {exc}") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
            raise StoreReadError(f"State file {path} must be an object with an 'items' list")

        for raw in payload["items"]:
            record = StoredRecord.from_dict(raw)
            store.items[record.key] = record
        store.logger.info("Loaded %d stored articles from %s", len(store.items), path)
        return store

    def merge(self, candidates: Iterable[CandidateRecord], now: datetime) -> int:
        """Upsert ``candidates`` by identity, last write wins; returns the merge count."""

        last_seen = format_timestamp(now)
        merged = 0
        for candidate in candidates:
            key = record_key(candidate)
            if key is None:
                self.logger.warning("Skipping article without id or canonical_url: title=%s", candidate.title)
                continue
            user = candidate.user
            self.items[key] = StoredRecord(
                key=key,
                id=candidate.id,
                canonical_url=candidate.canonical_url,
                url=candidate.url,
                title=candidate.title,
                description=candidate.description,
                published_timestamp=candidate.published_timestamp,
                published_at=candidate.published_at,
                edited_at=candidate.edited_at,
                public_reactions_count=candidate.public_reactions_count or 0,
                positive_reactions_count=candidate.positive_reactions_count or 0,
                tag_list=parse_tag_list(candidate.tag_list),
                user_name=user.name if user else None,
                user_username=user.username if user else None,
                last_seen=last_seen,
            )
            merged += 1
        return merged

    def prune(self, now: datetime, max_days: int, max_items: int) -> int:
        """Drop expired records, then the least recently seen ones above ``max_items``.

        An unparsable ``last_seen`` counts as expired for the age cutoff but
        as ``now`` when ranking for the size cap.
        """

        now = as_utc(now)
        cutoff = now - timedelta(days=max_days)
        before = len(self.items)

        kept = {}
        for key, record in self.items.items():
            seen = parse_timestamp(record.last_seen)
            if seen is not None and seen >= cutoff:
                kept[key] = record
        self.logger.debug("Age cutoff %s removed %d records", cutoff.isoformat(), before - len(kept))
        self.items = kept

        if len(self.items) > max_items:
            ordered = sorted(
                self.items.values(),
                key=lambda record: parse_timestamp(record.last_seen) or now,
            )
            survivors = ordered[len(ordered) - max_items:]
            self.logger.debug("Size cap %d evicted %d records", max_items, len(ordered) - len(survivors))
            self.items = {record.key: record for record in survivors}

        return before - len(self.items)

    def to_sorted_list(self) -> List[StoredRecord]:
        return [self.items[key] for key in sorted(self.items)]

    def save(self, path: Optional[Path] = None) -> None:
        """Write the store sorted by key, replacing the file atomically."""

        path = path or self.path
        if path is None:
            raise StoreWriteError("No path configured for the state file")

        payload = {"items": [record.to_dict() for record in self.to_sorted_list()]}
        text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        except OSError as exc:
            raise StoreWriteError(f"Could not prepare state directory {path.parent}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(tmp, path)
        except OSError as exc:
            try:
                os.remove(tmp)
            except OSError:
                pass
            raise StoreWriteError(f"Could not write state file {path}: {exc}") from exc
        self.logger.info("Saved %d stored articles to %s", len(self.items), path)


__all__ = [
    "StateStore",
    "as_utc",
    "format_timestamp",
    "parse_tag_list",
    "parse_timestamp",
    "record_key",
]
