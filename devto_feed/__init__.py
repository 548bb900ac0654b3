"""Atom feed of high-reaction DEV.to articles with a rolling history."""

__version__ = "0.1.0"
