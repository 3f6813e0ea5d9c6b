"""Crawl state shared by every worker.

Each container guards its check-and-insert sequences with a single lock so
a URL or asset is claimed by exactly one worker, even when a blocking
download finishes on a helper thread.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .models import CrawlJob


class Frontier:
    """Depth-bounded queue of pending crawl jobs.

    The frontier does not deduplicate; :class:`VisitedSet` decides at claim
    time whether a job still needs work.
    """

    def __init__(self, max_depth: int) -> None:
        self.max_depth = max_depth
        self._queue: "asyncio.Queue[CrawlJob]" = asyncio.Queue()

    def enqueue(self, url: str, depth: int) -> bool:
        if depth > self.max_depth:
            return False
        self._queue.put_nowait(CrawlJob(url=url, depth=depth))
        return True

    async def get(self) -> CrawlJob:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every enqueued job has been processed."""
        await self._queue.join()

    def empty(self) -> bool:
        return self._queue.empty()

    def __len__(self) -> int:
        return self._queue.qsize()


class VisitedSet:
    """Normalized page keys that a worker has already claimed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._keys: Set[str] = set()

    def claim(self, key: str) -> bool:
        with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


class AssetMap:
    """Remote asset URL -> local file, plus the outcome of each download.

    The mapping is recorded when a download is claimed, before any bytes are
    fetched, so a second discoverer of the same URL never downloads it
    again. Waiters can block until the claiming worker reports the outcome.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._paths: Dict[str, Path] = {}
        self._finished: Dict[str, asyncio.Event] = {}
        self._succeeded: Set[str] = set()

    def claim(self, url: str, local_path: Path) -> bool:
        with self._lock:
            if url in self._paths:
                return False
            self._paths[url] = local_path
            self._finished[url] = asyncio.Event()
            return True

    def mark_done(self, url: str, success: bool) -> None:
        with self._lock:
            if success:
                self._succeeded.add(url)
            event = self._finished.get(url)
        if event is not None:
            event.set()

    async def wait(self, url: str) -> bool:
        """Wait for the claimed download of ``url``; return its success."""
        with self._lock:
            event = self._finished.get(url)
        if event is None:
            return False
        await event.wait()
        return self.succeeded(url)

    def succeeded(self, url: str) -> bool:
        with self._lock:
            return url in self._succeeded

    def get(self, url: str) -> Optional[Path]:
        with self._lock:
            return self._paths.get(url)

    def downloaded_path(self, url: str) -> Optional[Path]:
        """Local path of ``url`` if its download finished successfully."""
        with self._lock:
            if url not in self._succeeded:
                return None
            return self._paths.get(url)

    def items(self) -> List[Tuple[str, Path]]:
        with self._lock:
            return list(self._paths.items())

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)


class PageLocalMap:
    """Normalized page key -> local HTML file, in visitation order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pages: Dict[str, Path] = {}

    def record(self, key: str, local_path: Path) -> None:
        with self._lock:
            self._pages.setdefault(key, local_path)

    def get(self, key: str) -> Optional[Path]:
        with self._lock:
            return self._pages.get(key)

    def paths(self) -> List[Path]:
        with self._lock:
            return list(self._pages.values())

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._pages))

    def __len__(self) -> int:
        with self._lock:
            return len(self._pages)


class CrawlState:
    """Bundle of the mutable state owned by one mirror run."""

    def __init__(self, max_depth: int) -> None:
        self.frontier = Frontier(max_depth)
        self.visited = VisitedSet()
        self.assets = AssetMap()
        self.pages = PageLocalMap()
