"""High-level orchestration for building the feed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

from .atom import FeedInfo, build_feed_xml
from .config import Config, Paths
from .errors import RenderError
from .fetchers import ArticleFetcher, DevToFetcher
from .index_page import IndexPage, build_index_html
from .projection import SOURCE_DOMAIN, build_entries, feed_updated, select_items
from .state import StateStore, format_timestamp

LOGGER = logging.getLogger(__name__)


@dataclass
class RunResult:
    merged: int
    stored: int
    entries: int
    feed_xml: str
    index_html: str


def build_url(base: str, path: str) -> str:
    if not base:
        return path
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def write_output(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise RenderError(f"Could not write {path}: {exc}") from exc
    LOGGER.info("Wrote %s", path)


def write_nojekyll(out_path: Path) -> None:
    """Drop an empty ``.nojekyll`` next to the feed so GitHub Pages serves it as-is."""

    marker = out_path.parent / ".nojekyll"
    if marker.exists():
        return
    write_output(marker, "")


def render(config: Config, store: StateStore, now: datetime) -> Tuple[FeedInfo, str, str]:
    items = select_items(store.items.values(), config.min_reactions, config.max_feed_entries)
    entries = build_entries(items, now)

    feed_url = build_url(config.site_url, config.feed_path)
    index_url = build_url(config.site_url, "index.html")
    feed_id = feed_url if config.site_url else f"tag:{SOURCE_DOMAIN},{now.strftime('%Y')}:devto-feed"
    updated = feed_updated(entries, now)

    feed = FeedInfo(
        id=feed_id,
        title=config.site_title,
        description=config.site_description,
        updated=updated,
        feed_url=feed_url,
        index_url=index_url,
        entries=entries,
    )
    page = IndexPage(
        title=config.site_title,
        description=config.site_description,
        feed_url=feed_url,
        updated=updated,
        min_reactions=config.min_reactions,
        lookback_days=config.lookback_days,
    )
    return feed, build_feed_xml(feed), build_index_html(page)


def run(
    config: Config,
    paths: Paths,
    *,
    fetcher: Optional[ArticleFetcher] = None,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> RunResult:
    """Run one load, fetch, merge, prune, render and save pass."""

    now = now or datetime.now(timezone.utc)
    fetcher = fetcher or DevToFetcher()

    # Load first: a corrupt store must abort before anything is fetched or merged.
    store = StateStore.load(paths.state)
    articles = fetcher.fetch(config)
    popular = [item for item in articles if (item.public_reactions_count or 0) >= config.min_reactions]
    LOGGER.info("Kept %d of %d fetched articles with >= %d reactions", len(popular), len(articles), config.min_reactions)

    merged = store.merge(popular, now)
    removed = store.prune(now, config.max_stored_days, config.max_stored_items)
    LOGGER.info("Merged %d articles, pruned %d, %d stored", merged, removed, len(store))

    feed, feed_xml, index_html = render(config, store, now)
    result = RunResult(
        merged=merged,
        stored=len(store),
        entries=len(feed.entries),
        feed_xml=feed_xml,
        index_html=index_html,
    )

    if dry_run:
        LOGGER.info("Dry run: nothing written")
        return result

    write_output(paths.out, feed_xml)
    write_output(paths.index, index_html)
    write_output(paths.last_build, format_timestamp(now))
    write_nojekyll(paths.out)
    store.save(paths.state)
    return result


__all__ = ["RunResult", "build_url", "render", "run", "write_nojekyll", "write_output"]
