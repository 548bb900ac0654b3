"""HTML landing page pointing at the feed."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from jinja2 import Environment, select_autoescape

from .state import format_timestamp

TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{{ title }}</title>
  <link rel="alternate" type="application/atom+xml" title="{{ title }}" href="{{ feed_url }}" />
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif; margin: 2rem; line-height: 1.6; }
    .meta { color: #555; }
  </style>
</head>
<body>
  <h1>{{ title }}</h1>
  <p>{{ description }}</p>
  <p><a href="{{ feed_url }}">feed.xml</a></p>
  <div class="meta">
    <p>Last updated: <span id="updated">{{ updated }}</span></p>
    <p>min_reactions: <span id="min-reactions">{{ min_reactions }}</span></p>
    <p>lookback_days: <span id="lookback-days">{{ lookback_days }}</span></p>
  </div>
</body>
</html>
"""

_ENV = Environment(autoescape=select_autoescape(default_for_string=True), keep_trailing_newline=True)


@dataclass
class IndexPage:
    title: str
    description: str
    feed_url: str
    updated: datetime
    min_reactions: int
    lookback_days: int


def build_index_html(page: IndexPage) -> str:
    template = _ENV.from_string(TEMPLATE)
    return template.render(
        title=page.title,
        description=page.description,
        feed_url=page.feed_url,
        updated=format_timestamp(page.updated),
        min_reactions=page.min_reactions,
        lookback_days=page.lookback_days,
    )


__all__ = ["IndexPage", "build_index_html"]
