"""Command-line entry point for the site mirror."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import (
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_DEPTH,
    DEFAULT_OUTPUT,
    MirrorConfig,
    resolve_proxy,
)
from .crawler import run_mirror
from .urls import CrawlScope

logger = logging.getLogger("site_mirror.cli")

USAGE = "Usage: site-mirror <target-url> <outdir> [maxDepth] [concurrency] [proxy]"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="site-mirror",
        usage=USAGE[len("Usage: "):],
        description="Render a website subtree with headless Chromium and save a browsable local copy.",
    )
    parser.add_argument("target_url", nargs="?", help="Start URL; its path is the crawl prefix")
    parser.add_argument(
        "outdir",
        nargs="?",
        default=DEFAULT_OUTPUT,
        type=Path,
        help="Directory where pages, assets and the index are written",
    )
    parser.add_argument(
        "max_depth",
        nargs="?",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="Maximum link depth from the start URL (default: 2)",
    )
    parser.add_argument(
        "concurrency",
        nargs="?",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help="Number of pages rendered at once (default: 2)",
    )
    parser.add_argument(
        "proxy",
        nargs="?",
        default=None,
        help="Upstream proxy URL; overrides the PROXY environment variable",
    )
    return parser.parse_args(argv)


def _configure_logging() -> None:
    level_name = os.getenv("MIRROR_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _usage_error(message: Optional[str] = None) -> int:
    if message:
        print(message, file=sys.stderr)
    print(USAGE, file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    if not args.target_url:
        return _usage_error()
    try:
        CrawlScope.from_target(args.target_url)
    except ValueError as exc:
        return _usage_error(str(exc))
    if args.max_depth < 0 or args.concurrency < 1:
        return _usage_error("maxDepth must be >= 0 and concurrency >= 1")

    _configure_logging()
    config = MirrorConfig(
        target_url=args.target_url,
        output_root=Path(args.outdir),
        max_depth=args.max_depth,
        concurrency=args.concurrency,
        proxy=resolve_proxy(args.proxy),
    )
    logger.info("Target: %s", config.target_url)
    logger.info(
        "Outdir: %s MaxDepth: %d Concurrency: %d Proxy: %s",
        config.output_root,
        config.max_depth,
        config.concurrency,
        config.proxy or "none",
    )

    result = asyncio.run(run_mirror(config))
    logger.debug(
        "Mirrored %d pages and %d assets in %.2fs",
        len(result.pages),
        result.asset_count,
        result.total_seconds,
    )
    logger.info("Done. Mirror saved to: %s", config.output_root)
    return 0


if __name__ == "__main__":
    sys.exit(main())
