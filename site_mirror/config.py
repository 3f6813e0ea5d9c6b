"""Configuration objects and constants for the mirror."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120 Safari/537.36"
)
DEFAULT_OUTPUT = "./public"
DEFAULT_MAX_DEPTH = 2
DEFAULT_CONCURRENCY = 2


def resolve_proxy(cli_value: Optional[str] = None) -> Optional[str]:
    """Pick the upstream proxy: an explicit argument wins over ``PROXY``."""
    return cli_value or os.getenv("PROXY") or None


@dataclass(frozen=True)
class TransportConfig:
    """Settings handed to every asset download."""

    user_agent: str = DEFAULT_USER_AGENT
    proxy: Optional[str] = None
    timeout: float = 30.0

    def headers(self, referer: Optional[str] = None) -> Dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if referer:
            headers["Referer"] = referer
        return headers

    def proxies(self) -> Optional[Dict[str, str]]:
        if not self.proxy:
            return None
        return {"http": self.proxy, "https": self.proxy}


@dataclass
class MirrorConfig:
    """Top-level settings that control crawling and materialization."""

    target_url: str
    output_root: Path
    max_depth: int = DEFAULT_MAX_DEPTH
    concurrency: int = DEFAULT_CONCURRENCY
    proxy: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    navigation_timeout: float = 60.0
    asset_timeout: float = 30.0
    scroll_step: int = 400
    scroll_interval: float = 0.25
    wait_after_scroll: float = 1.0
    page_delay: float = 0.3

    @property
    def transport(self) -> TransportConfig:
        return TransportConfig(
            user_agent=self.user_agent,
            proxy=self.proxy,
            timeout=self.asset_timeout,
        )
