"""Listing page for the finished mirror."""

from __future__ import annotations

import html
import os
from pathlib import Path
from typing import Iterable, List
from urllib.parse import quote

INDEX_NAME = "index.html"


def relative_page_paths(page_paths: Iterable[Path], output_root: Path) -> List[str]:
    return [Path(os.path.relpath(path, output_root)).as_posix() for path in page_paths]


def render_index(page_paths: Iterable[Path], output_root: Path) -> str:
    """Build the HTML listing with one link per mirrored page."""
    items = "".join(
        f'<li><a href="./{html.escape(quote(rel, safe="/"))}">{html.escape(rel)}</a></li>'
        for rel in relative_page_paths(page_paths, output_root)
    )
    return (
        '<!doctype html><html><head><meta charset="utf-8"><title>Mirror index</title>'
        f"</head><body><h1>Mirrored pages</h1><ul>{items}</ul></body></html>"
    )


def write_index(page_paths: Iterable[Path], output_root: Path) -> Path:
    index_path = output_root / INDEX_NAME
    output_root.mkdir(parents=True, exist_ok=True)
    index_path.write_text(render_index(page_paths, output_root), encoding="utf-8")
    return index_path
