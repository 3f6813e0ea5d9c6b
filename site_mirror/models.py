"""Data models used throughout the mirror pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class CrawlJob:
    """A page waiting in the frontier."""

    url: str
    depth: int


@dataclass
class RenderedPage:
    """Markup and live-DOM details read back from the renderer."""

    url: str
    final_url: str
    html: str
    background_urls: List[str] = field(default_factory=list)


@dataclass
class PageReferences:
    """Raw references collected from one rendered page."""

    links: List[str] = field(default_factory=list)
    assets: List[str] = field(default_factory=list)
    srcsets: List[str] = field(default_factory=list)
