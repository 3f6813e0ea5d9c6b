"""URL canonicalization and crawl scope checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import SplitResult, urlsplit, urlunsplit

WEB_SCHEMES = ("http", "https")


def _split(url: str) -> Optional[SplitResult]:
    try:
        parts = urlsplit(url.strip())
        parts.port  # raises ValueError for a malformed port
    except (ValueError, AttributeError):
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts


def normalize_key(url: str) -> Optional[str]:
    """Return the canonical form of ``url`` without its fragment.

    ``None`` marks a URL that cannot be parsed; callers skip it.
    """
    parts = _split(url)
    if parts is None:
        return None
    scheme = parts.scheme.lower()
    path = parts.path
    if scheme in WEB_SCHEMES and not path:
        path = "/"
    return urlunsplit((scheme, _lower_host(parts.netloc), path, parts.query, ""))


def _lower_host(netloc: str) -> str:
    userinfo, sep, hostport = netloc.rpartition("@")
    return f"{userinfo}{sep}{hostport.lower()}"


def is_web_url(url: str) -> bool:
    parts = _split(url)
    return parts is not None and parts.scheme.lower() in WEB_SCHEMES


def origin_of(url: str) -> Optional[str]:
    parts = _split(url)
    if parts is None:
        return None
    return f"{parts.scheme.lower()}://{_lower_host(parts.netloc)}"


def path_prefix(url: str) -> str:
    """Path of the start URL without its trailing slash."""
    return urlsplit(url).path.rstrip("/")


def in_scope(url: str, origin: str, prefix: str) -> bool:
    """True when ``url`` shares ``origin`` and its path starts with ``prefix``."""
    if origin_of(url) != origin:
        return False
    return urlsplit(url).path.startswith(prefix)


@dataclass(frozen=True)
class CrawlScope:
    """Origin and path prefix derived from the start URL."""

    origin: str
    prefix: str

    @classmethod
    def from_target(cls, target_url: str) -> "CrawlScope":
        origin = origin_of(target_url)
        if origin is None or not is_web_url(target_url):
            raise ValueError(f"Invalid target URL: {target_url!r}")
        return cls(origin=origin, prefix=path_prefix(target_url))

    def contains(self, url: str) -> bool:
        return in_scope(url, self.origin, self.prefix)
