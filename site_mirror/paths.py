"""Deterministic mapping from remote URLs to files in the mirror."""

from __future__ import annotations

import os
import posixpath
from pathlib import Path
from typing import List
from urllib.parse import quote, unquote, urlsplit

from .utils import sanitize_segment

ASSET_DIR = "assets"
ASSET_FALLBACK_NAME = "index"
ASSET_FALLBACK_EXTENSION = ".bin"
PAGE_INDEX = "index.html"
PAGE_EXTENSION = ".html"


def _decoded_path(url: str) -> str:
    return unquote(urlsplit(url).path.lstrip("/"))


def _safe_parts(parts: List[str]) -> List[str]:
    cleaned = (sanitize_segment(part) for part in parts)
    return [part for part in cleaned if part]


def _host(url: str) -> str:
    return sanitize_segment(urlsplit(url).hostname or "") or "host"


def map_asset(url: str, output_root: Path) -> Path:
    """Map an asset URL to ``<root>/assets/<host>/<path>``.

    Directory-like paths get an ``index`` file name and names without an
    extension get ``.bin`` so every asset has a suffix.
    """
    relative = _decoded_path(url)
    if not relative or relative.endswith("/"):
        relative += ASSET_FALLBACK_NAME
    if not posixpath.splitext(relative)[1]:
        relative += ASSET_FALLBACK_EXTENSION
    parts = _safe_parts(relative.split("/")) or [
        ASSET_FALLBACK_NAME + ASSET_FALLBACK_EXTENSION
    ]
    return output_root.joinpath(ASSET_DIR, _host(url), *parts)


def map_page(url: str, output_root: Path) -> Path:
    """Map a page URL to ``<root>/<host>/<path>`` with an ``.html`` file."""
    parts = _safe_parts(_decoded_path(url).split("/"))
    if not parts or not posixpath.splitext(parts[-1])[1]:
        parts.append(PAGE_INDEX)
    elif not parts[-1].endswith(PAGE_EXTENSION):
        parts[-1] += PAGE_EXTENSION
    return output_root.joinpath(_host(url), *parts)


def make_relative(from_file: Path, to_file: Path) -> str:
    """URL-encoded POSIX link from the directory of ``from_file`` to ``to_file``.

    Files are stored under decoded names, so characters such as ``#`` or
    ``%`` are quoted again before the path is used in markup.
    """
    relative = quote(Path(os.path.relpath(to_file, from_file.parent)).as_posix(), safe="/")
    return relative if relative.startswith(".") else "./" + relative
