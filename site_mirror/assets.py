"""Asset downloading, deduplication and stylesheet expansion."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional

import requests

from .config import TransportConfig
from .content import css_urls, resolve_reference, rewrite_css_urls
from .paths import make_relative, map_asset
from .state import AssetMap
from .urls import is_web_url

logger = logging.getLogger("site_mirror")

STYLESHEET_SUFFIX = ".css"


class AssetDownloader:
    """Blocking HTTP transport for asset bytes."""

    def __init__(
        self,
        transport: TransportConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.transport = transport
        self.session = session or requests.Session()

    def download(self, url: str, local_path: Path, referer: Optional[str]) -> bool:
        """Fetch ``url`` into ``local_path``; ``False`` on any failure."""
        try:
            resp = self.session.get(
                url,
                headers=self.transport.headers(referer),
                proxies=self.transport.proxies(),
                timeout=self.transport.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Asset download error %s: %s", url, exc)
            return False

        if not 200 <= resp.status_code < 300:
            logger.warning("Asset fetch failed %s %s", resp.status_code, url)
            return False

        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            local_path.write_bytes(resp.content)
        except OSError as exc:
            logger.warning("Failed to write asset %s: %s", local_path, exc)
            return False
        logger.info("Saved asset -> %s", local_path)
        return True

    def close(self) -> None:
        self.session.close()


class AssetResolver:
    """Download each asset URL exactly once per run."""

    def __init__(
        self,
        assets: AssetMap,
        downloader: AssetDownloader,
        output_root: Path,
    ) -> None:
        self.assets = assets
        self.downloader = downloader
        self.output_root = output_root

    async def resolve(self, urls: Iterable[str], referer: str) -> None:
        """Download unseen ``urls`` and wait for every outcome.

        URLs already claimed by another worker are not fetched again, but
        their outcome is awaited so callers never rewrite against a download
        that is still in flight.
        """
        requested: List[str] = list(urls)
        for url in requested:
            await self._fetch(url, referer, expand=True)
        for url in requested:
            await self.assets.wait(url)

    async def _fetch(self, url: str, referer: str, expand: bool) -> bool:
        local_path = map_asset(url, self.output_root)
        if not self.assets.claim(url, local_path):
            return False
        success = False
        try:
            success = await asyncio.to_thread(
                self.downloader.download, url, local_path, referer
            )
        finally:
            self.assets.mark_done(url, success)
        if not success:
            logger.warning("Failed asset %s", url)
        elif expand and local_path.suffix.lower() == STYLESHEET_SUFFIX:
            await self._expand_stylesheet(url, local_path)
        return success

    async def _expand_stylesheet(self, css_url: str, css_path: Path) -> None:
        """Fetch ``url()`` references of a stylesheet, one level deep."""
        try:
            raw = css_path.read_bytes()
        except OSError as exc:
            logger.debug("Could not read stylesheet %s: %s", css_path, exc)
            return
        try:
            text = raw.decode("utf-8")
            rewritable = True
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="replace")
            rewritable = False

        for reference in css_urls(text):
            if reference.lower().startswith("data:"):
                continue
            absolute = resolve_reference(css_url, reference)
            if not absolute or not is_web_url(absolute):
                continue
            await self._fetch(absolute, css_url, expand=False)
            await self.assets.wait(absolute)

        def _lookup(absolute: str) -> Optional[str]:
            target = self.assets.downloaded_path(absolute)
            return make_relative(css_path, target) if target else None

        if not rewritable:
            logger.debug("Leaving non-UTF-8 stylesheet %s unrewritten", css_path)
            return
        updated = rewrite_css_urls(text, css_url, _lookup)
        if updated == text:
            return
        try:
            css_path.write_text(updated, encoding="utf-8")
        except OSError as exc:
            logger.debug("Could not rewrite stylesheet %s: %s", css_path, exc)
