"""Reference extraction and URL rewriting for rendered pages."""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from .models import PageReferences
from .urls import is_web_url

CSS_URL_PATTERN = re.compile(r"""url\(\s*(['"]?)(.*?)\1\s*\)""", re.IGNORECASE)
SRCSET_URL_PATTERN = re.compile(r"[\s,]*(\S+)")

# (tag, attribute) pairs holding a single asset URL.
ASSET_ATTRIBUTES = (
    ("img", "src"),
    ("script", "src"),
    ("link", "href"),
    ("source", "src"),
)
SRCSET_TAGS = ["img", "source"]

Lookup = Callable[[str], Optional[str]]


def resolve_reference(base_url: str, reference: str) -> Optional[str]:
    """Resolve ``reference`` against ``base_url``; ``None`` if unparsable."""
    try:
        return urljoin(base_url, reference.strip())
    except ValueError:
        return None


def css_urls(text: str) -> List[str]:
    """Return every non-empty ``url(...)`` argument found in CSS text."""
    return [
        match.group(2).strip()
        for match in CSS_URL_PATTERN.finditer(text)
        if match.group(2).strip()
    ]


def split_srcset(value: str) -> List[Tuple[str, str]]:
    """Split a ``srcset`` value into ``(url, descriptor)`` candidates.

    As in HTML, a URL runs to the next whitespace and may itself contain
    commas; only trailing commas end a candidate early. The descriptor
    runs to the next comma.
    """
    candidates = []
    position = 0
    while True:
        match = SRCSET_URL_PATTERN.match(value, position)
        if not match:
            break
        url = match.group(1)
        position = match.end()
        descriptor = ""
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            end = value.find(",", position)
            if end == -1:
                end = len(value)
            descriptor = value[position:end].strip()
            position = end + 1
        if url:
            candidates.append((url, descriptor))
    return candidates


def _is_stylesheet(tag: Tag) -> bool:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return any(value.lower() == "stylesheet" for value in rel)


def _asset_tags(soup: BeautifulSoup) -> Iterable[Tuple[Tag, str]]:
    for name, attribute in ASSET_ATTRIBUTES:
        for tag in soup.find_all(name, attrs={attribute: True}):
            if name == "link" and not _is_stylesheet(tag):
                continue
            yield tag, attribute


def collect_references(soup: BeautifulSoup, base_url: str) -> PageReferences:
    """Collect hyperlinks and raw asset references from a parsed page."""
    references = PageReferences()
    for anchor in soup.find_all("a", href=True):
        resolved = resolve_reference(base_url, anchor["href"])
        if resolved:
            references.links.append(resolved)

    for tag, attribute in _asset_tags(soup):
        value = tag.get(attribute, "").strip()
        if value:
            references.assets.append(value)

    for tag in soup.find_all(SRCSET_TAGS, srcset=True):
        if tag["srcset"].strip():
            references.srcsets.append(tag["srcset"])

    for tag in soup.find_all(style=True):
        references.assets.extend(css_urls(tag["style"]))
    return references


def resolve_asset_urls(
    references: PageReferences,
    base_url: str,
    extra: Iterable[str] = (),
) -> List[str]:
    """Turn raw references into unique absolute ``http(s)`` asset URLs.

    ``data:`` URIs and anything that does not resolve to a web URL are
    dropped. Order of first appearance is kept.
    """
    raw: List[str] = list(references.assets)
    for value in references.srcsets:
        raw.extend(url for url, _ in split_srcset(value))
    raw.extend(extra)

    seen = set()
    urls: List[str] = []
    for reference in raw:
        reference = reference.strip()
        if not reference or reference.lower().startswith("data:"):
            continue
        absolute = resolve_reference(base_url, reference)
        if not absolute or absolute in seen or not is_web_url(absolute):
            continue
        seen.add(absolute)
        urls.append(absolute)
    return urls


def rewrite_css_urls(text: str, base_url: str, lookup: Lookup) -> str:
    """Replace ``url(...)`` arguments that ``lookup`` maps to a local path."""

    def _replace(match: "re.Match[str]") -> str:
        reference = match.group(2).strip()
        if not reference or reference.lower().startswith("data:"):
            return match.group(0)
        absolute = resolve_reference(base_url, reference)
        local = lookup(absolute) if absolute else None
        if local is None:
            return match.group(0)
        quote = match.group(1)
        return f"url({quote}{local}{quote})"

    return CSS_URL_PATTERN.sub(_replace, text)


def _rewrite_srcset(value: str, base_url: str, lookup: Lookup) -> Optional[str]:
    changed = False
    parts = []
    for url, descriptor in split_srcset(value):
        absolute = resolve_reference(base_url, url)
        local = lookup(absolute) if absolute else None
        if local is not None:
            changed = True
            url = local
        parts.append(f"{url} {descriptor}".strip())
    return ", ".join(parts) if changed else None


def rewrite_references(
    soup: BeautifulSoup,
    base_url: str,
    asset_lookup: Lookup,
    page_lookup: Optional[Lookup] = None,
) -> int:
    """Point asset (and optionally page) references at local files.

    ``asset_lookup``/``page_lookup`` receive an absolute URL and return the
    relative local path, or ``None`` to leave the reference untouched.
    Returns the number of attributes changed.
    """
    rewritten = 0
    for tag, attribute in _asset_tags(soup):
        absolute = resolve_reference(base_url, tag[attribute])
        local = asset_lookup(absolute) if absolute else None
        if local is not None:
            tag[attribute] = local
            rewritten += 1

    for tag in soup.find_all(SRCSET_TAGS, srcset=True):
        updated = _rewrite_srcset(tag["srcset"], base_url, asset_lookup)
        if updated is not None:
            tag["srcset"] = updated
            rewritten += 1

    for tag in soup.find_all(style=True):
        updated = rewrite_css_urls(tag["style"], base_url, asset_lookup)
        if updated != tag["style"]:
            tag["style"] = updated
            rewritten += 1

    if page_lookup is not None:
        for anchor in soup.find_all("a", href=True):
            absolute = resolve_reference(base_url, anchor["href"])
            local = page_lookup(absolute) if absolute else None
            if local is not None:
                anchor["href"] = local
                rewritten += 1
    return rewritten
