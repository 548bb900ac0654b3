"""Shared dataclasses and type definitions for the feed."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .errors import FetchError, StoreReadError


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _opt_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass
class Author:
    name: Optional[str] = None
    username: Optional[str] = None


@dataclass
class CandidateRecord:
    """Article as returned by the DEV.to API for the current run."""

    title: str
    id: Optional[int] = None
    url: Optional[str] = None
    canonical_url: Optional[str] = None
    description: Optional[str] = None
    published_timestamp: Optional[str] = None
    published_at: Optional[str] = None
    edited_at: Optional[str] = None
    public_reactions_count: Optional[int] = None
    positive_reactions_count: Optional[int] = None
    tag_list: Optional[str] = None
    user: Optional[Author] = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "CandidateRecord":
        """Build a candidate from one element of the API's JSON array.

        Fields with an unexpected type are treated as missing, except for the
        title which the feed cannot do without.
        """

        title = payload.get("title")
        if not isinstance(title, str):
            raise FetchError(f"Article payload without a title: id={payload.get('id')!r}")

        tags = payload.get("tag_list")
        if isinstance(tags, list):
            # Some endpoints return tags as an array rather than a string.
            tags = ", ".join(tag for tag in tags if isinstance(tag, str))

        user = None
        raw_user = payload.get("user")
        if isinstance(raw_user, Mapping):
            user = Author(name=_opt_str(raw_user.get("name")), username=_opt_str(raw_user.get("username")))

        return cls(
            title=title,
            id=_opt_int(payload.get("id")),
            url=_opt_str(payload.get("url")),
            canonical_url=_opt_str(payload.get("canonical_url")),
            description=_opt_str(payload.get("description")),
            published_timestamp=_opt_str(payload.get("published_timestamp")),
            published_at=_opt_str(payload.get("published_at")),
            edited_at=_opt_str(payload.get("edited_at")),
            public_reactions_count=_opt_int(payload.get("public_reactions_count")),
            positive_reactions_count=_opt_int(payload.get("positive_reactions_count")),
            tag_list=_opt_str(tags),
            user=user,
        )


_OPTIONAL_STR_FIELDS = (
    "canonical_url",
    "url",
    "description",
    "published_timestamp",
    "published_at",
    "edited_at",
    "user_name",
    "user_username",
)


@dataclass
class StoredRecord:
    """Identity-keyed article accumulated across runs."""

    key: str
    title: str
    last_seen: str
    id: Optional[int] = None
    canonical_url: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    published_timestamp: Optional[str] = None
    published_at: Optional[str] = None
    edited_at: Optional[str] = None
    public_reactions_count: int = 0
    positive_reactions_count: int = 0
    tag_list: List[str] = field(default_factory=list)
    user_name: Optional[str] = None
    user_username: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "id": self.id,
            "canonical_url": self.canonical_url,
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "published_timestamp": self.published_timestamp,
            "published_at": self.published_at,
            "edited_at": self.edited_at,
            "public_reactions_count": self.public_reactions_count,
            "positive_reactions_count": self.positive_reactions_count,
            "tag_list": list(self.tag_list),
            "user_name": self.user_name,
            "user_username": self.user_username,
            "last_seen": self.last_seen,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "StoredRecord":
        if not isinstance(data, Mapping):
            raise StoreReadError(f"Stored item must be an object, got {type(data).__name__}")

        for name in ("key", "title", "last_seen"):
            if not isinstance(data.get(name), str):
                raise StoreReadError(f"Stored item is missing string field {name!r}")
        for name in ("public_reactions_count", "positive_reactions_count"):
            if _opt_int(data.get(name)) is None:
                raise StoreReadError(f"Stored item {data['key']!r} has invalid {name!r}")

        tags = data.get("tag_list")
        if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise StoreReadError(f"Stored item {data['key']!r} has invalid 'tag_list'")

        identifier = data.get("id")
        if identifier is not None and _opt_int(identifier) is None:
            raise StoreReadError(f"Stored item {data['key']!r} has invalid 'id'")

        optional = {}
        for name in _OPTIONAL_STR_FIELDS:
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                raise StoreReadError(f"Stored item {data['key']!r} has invalid {name!r}")
            optional[name] = value

        return cls(
            key=data["key"],
            title=data["title"],
            last_seen=data["last_seen"],
            id=identifier,
            public_reactions_count=data["public_reactions_count"],
            positive_reactions_count=data["positive_reactions_count"],
            tag_list=list(tags),
            **optional,
        )


@dataclass
class FeedEntry:
    """Rendered view of one stored record; never persisted."""

    id: str
    title: str
    link: str
    updated: datetime
    summary_html: str
