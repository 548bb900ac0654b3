"""Atom 1.0 rendering for the projected entries."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from .models import FeedEntry
from .state import format_timestamp

ATOM_NS = "http://www.w3.org/2005/Atom"
GENERATOR = "devto-feed"


@dataclass
class FeedInfo:
    id: str
    title: str
    description: str
    updated: datetime
    feed_url: str
    index_url: str
    entries: List[FeedEntry] = field(default_factory=list)


def _text(parent: ET.Element, tag: str, text: str, **attrib: str) -> ET.Element:
    element = ET.SubElement(parent, tag, attrib)
    element.text = text
    return element


def build_feed_xml(feed: FeedInfo) -> str:
    root = ET.Element("feed", {"xmlns": ATOM_NS})
    _text(root, "id", feed.id)
    _text(root, "title", feed.title)
    _text(root, "subtitle", feed.description)
    _text(root, "updated", format_timestamp(feed.updated))
    ET.SubElement(root, "link", {"rel": "self", "href": feed.feed_url})
    ET.SubElement(root, "link", {"rel": "alternate", "href": feed.index_url})
    _text(root, "generator", GENERATOR)

    for entry in feed.entries:
        node = ET.SubElement(root, "entry")
        _text(node, "id", entry.id)
        _text(node, "title", entry.title)
        ET.SubElement(node, "link", {"rel": "alternate", "href": entry.link})
        _text(node, "updated", format_timestamp(entry.updated))
        # ElementTree escapes the markup so readers decode it as type="html".
        _text(node, "summary", entry.summary_html, type="html")

    ET.indent(root)
    body = ET.tostring(root, encoding="unicode")
    return '<?xml version="1.0" encoding="utf-8"?>\n' + body + "\n"


__all__ = ["ATOM_NS", "FeedInfo", "build_feed_xml"]
