"""In-memory stand-ins for the browser and the HTTP transport."""

import asyncio
import threading
import time
from urllib.parse import urldefrag

from site_mirror.models import RenderedPage
from site_mirror.renderer import NavigationError


class FakeTab:
    def __init__(self, renderer):
        self.renderer = renderer
        self.closed = False

    async def render(self, url):
        renderer = self.renderer
        renderer.calls.append(url)
        renderer.in_flight += 1
        renderer.max_in_flight = max(renderer.max_in_flight, renderer.in_flight)
        try:
            await asyncio.sleep(renderer.delay)
            page_url = urldefrag(url)[0]
            if page_url not in renderer.pages:
                raise NavigationError(url, "timed out")
            return RenderedPage(
                url=url,
                final_url=page_url,
                html=renderer.pages[page_url],
                background_urls=list(renderer.backgrounds.get(page_url, [])),
            )
        finally:
            renderer.in_flight -= 1

    async def close(self):
        self.closed = True


class FakeRenderer:
    """Serves canned markup keyed by URL (without fragment)."""

    def __init__(self, pages, backgrounds=None, delay=0.0):
        self.pages = pages
        self.backgrounds = backgrounds or {}
        self.delay = delay
        self.calls = []
        self.tabs = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def new_tab(self):
        tab = FakeTab(self)
        self.tabs.append(tab)
        return tab


class FakeDownloader:
    """Writes canned bytes for known URLs and fails for the rest."""

    def __init__(self, files=None, delay=0.0):
        self.files = files or {}
        self.delay = delay
        self.calls = []
        self.referers = {}
        self._lock = threading.Lock()

    def download(self, url, local_path, referer):
        with self._lock:
            self.calls.append(url)
            self.referers[url] = referer
        if self.delay:
            time.sleep(self.delay)
        data = self.files.get(url)
        if data is None:
            return False
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(data)
        return True

    def close(self):
        pass
