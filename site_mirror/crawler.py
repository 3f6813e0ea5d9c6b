"""High-level orchestration for rendering, rewriting and saving pages."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .assets import AssetDownloader, AssetResolver
from .config import MirrorConfig
from .content import collect_references, resolve_asset_urls, rewrite_references
from .index import write_index
from .models import CrawlJob
from .paths import make_relative, map_page
from .renderer import NavigationError, PlaywrightRenderer
from .state import CrawlState, Frontier
from .urls import CrawlScope, normalize_key

logger = logging.getLogger("site_mirror")


@dataclass
class MirrorResult:
    """Summary of a finished mirror run."""

    output_root: Path
    pages: List[Path] = field(default_factory=list)
    asset_count: int = 0
    index_path: Optional[Path] = None
    total_seconds: float = 0.0


class PageMaterializer:
    """Render one claimed page, fetch its assets and write it to disk."""

    def __init__(
        self,
        config: MirrorConfig,
        state: CrawlState,
        resolver: AssetResolver,
        scope: CrawlScope,
    ) -> None:
        self.config = config
        self.state = state
        self.resolver = resolver
        self.scope = scope

    async def materialize(self, job: CrawlJob, tab) -> Optional[Path]:
        """Process ``job``; return the written page path or ``None``."""
        key = normalize_key(job.url)
        if key is None:
            logger.debug("Skipping invalid URL %s", job.url)
            return None
        if not self.state.visited.claim(key):
            return None
        logger.info("Fetching (%d) %s depth %d", len(self.state.visited), job.url, job.depth)

        try:
            return await self._materialize(job, key, tab)
        except NavigationError as exc:
            logger.warning("Fetch failed %s: %s", job.url, exc.reason)
        except OSError as exc:
            logger.warning("Failed to write page %s: %s", job.url, exc)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error mirroring %s", job.url)
        return None

    async def _materialize(self, job: CrawlJob, key: str, tab) -> Path:
        rendered = await tab.render(job.url)
        soup = BeautifulSoup(rendered.html, "html.parser")

        local_path = map_page(job.url, self.config.output_root)
        self.state.pages.record(key, local_path)

        base_url = rendered.final_url
        references = collect_references(soup, base_url)
        queued = self.enqueue_links(references.links, job.depth)
        logger.debug("Queued %d new links from %s", queued, job.url)

        asset_urls = resolve_asset_urls(references, base_url, rendered.background_urls)
        await self.resolver.resolve(asset_urls, referer=job.url)

        def _asset_lookup(absolute: str) -> Optional[str]:
            target = self.state.assets.downloaded_path(absolute)
            return make_relative(local_path, target) if target else None

        def _page_lookup(absolute: str) -> Optional[str]:
            page_key = normalize_key(absolute)
            target = self.state.pages.get(page_key) if page_key else None
            if target is None:
                return None
            relative = make_relative(local_path, target)
            fragment = urlsplit(absolute).fragment
            return f"{relative}#{fragment}" if fragment else relative

        rewritten = rewrite_references(soup, base_url, _asset_lookup, _page_lookup)
        logger.debug("Rewrote %d references in %s", rewritten, job.url)

        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_text(soup.decode(), encoding="utf-8")
        logger.info("Saved page -> %s", local_path)
        if self.config.page_delay:
            await asyncio.sleep(self.config.page_delay)
        return local_path

    def enqueue_links(self, links: Iterable[str], depth: int) -> int:
        """Queue in-scope, unvisited links one level deeper than ``depth``."""
        child_depth = depth + 1
        if child_depth > self.config.max_depth:
            return 0
        queued = 0
        for link in links:
            if not self.scope.contains(link):
                continue
            link_key = normalize_key(link)
            if link_key is None or link_key in self.state.visited:
                continue
            if self.state.frontier.enqueue(link, child_depth):
                queued += 1
        return queued


async def _worker(tab, frontier: Frontier, materializer: PageMaterializer) -> None:
    while True:
        job = await frontier.get()
        try:
            await materializer.materialize(job, tab)
        finally:
            frontier.task_done()


async def run_mirror(
    config: MirrorConfig,
    renderer=None,
    downloader: Optional[AssetDownloader] = None,
) -> MirrorResult:
    """Crawl ``config.target_url`` and write a browsable local mirror.

    ``renderer`` must be an async context manager exposing ``new_tab()``;
    it defaults to a headless Chromium :class:`PlaywrightRenderer`.
    """
    scope = CrawlScope.from_target(config.target_url)
    state = CrawlState(config.max_depth)
    owns_downloader = downloader is None
    if downloader is None:
        downloader = AssetDownloader(config.transport)
    resolver = AssetResolver(state.assets, downloader, config.output_root)
    materializer = PageMaterializer(config, state, resolver, scope)

    overall_start = time.perf_counter()
    state.frontier.enqueue(config.target_url, 0)
    try:
        async with renderer or PlaywrightRenderer(config) as active:
            tabs = [await active.new_tab() for _ in range(config.concurrency)]
            workers = [
                asyncio.create_task(_worker(tab, state.frontier, materializer))
                for tab in tabs
            ]
            try:
                await state.frontier.join()
            finally:
                for worker in workers:
                    worker.cancel()
                await asyncio.gather(*workers, return_exceptions=True)
                for tab in tabs:
                    await tab.close()
    finally:
        if owns_downloader:
            downloader.close()

    result = MirrorResult(
        output_root=config.output_root,
        pages=state.pages.paths(),
        asset_count=len(state.assets),
    )
    try:
        result.index_path = write_index(result.pages, config.output_root)
    except OSError as exc:
        logger.warning("Failed to write index page: %s", exc)
    result.total_seconds = time.perf_counter() - overall_start
    return result
