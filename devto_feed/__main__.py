"""Command-line entry point for building the DEV.to high-reactions feed."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import Paths, load_config
from .errors import DevtoFeedError
from .pipeline import run

LOGGER = logging.getLogger("devto_feed")


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    defaults = Paths()
    parser = argparse.ArgumentParser(description="Build an Atom feed of high-reaction DEV.to articles")
    parser.add_argument("--config", type=Path, help="TOML config file (default: $DEVTO_FEED_CONFIG)")
    parser.add_argument("--state", type=Path, default=defaults.state, help="JSON article history")
    parser.add_argument("--out", type=Path, default=defaults.out, help="Atom feed output path")
    parser.add_argument("--index", type=Path, default=defaults.index, help="HTML landing page output path")
    parser.add_argument(
        "--last-build",
        type=Path,
        default=defaults.last_build,
        help="File receiving the RFC 3339 build timestamp",
    )
    parser.add_argument("--dry-run", action="store_true", help="Run everything but write nothing")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    paths = Paths(state=args.state, out=args.out, index=args.index, last_build=args.last_build)
    try:
        config = load_config(args.config)
        result = run(config, paths, dry_run=args.dry_run)
    except DevtoFeedError as exc:
        LOGGER.error("%s", exc)
        return exc.exit_code

    if args.dry_run:
        print(f"dry-run: merged={result.merged} stored={result.stored} entries={result.entries}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
