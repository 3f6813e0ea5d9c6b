"""Utility helpers for filesystem-safe path components."""

from __future__ import annotations

import re

UNSAFE_PATTERN = re.compile(r'[/\\?<>:*|"\x00-\x1f\x80-\x9f]')
RESERVED_PATTERN = re.compile(r"^\.+$")
WINDOWS_RESERVED_PATTERN = re.compile(
    r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE
)
TRAILING_PATTERN = re.compile(r"[. ]+$")
MAX_SEGMENT_BYTES = 255


def sanitize_segment(value: str, replacement: str = "") -> str:
    """Make a single path component safe to use on any filesystem.

    Separators, control characters and characters reserved on Windows are
    replaced, ``.``/``..`` collapse to an empty string, and the result is
    truncated to 255 bytes. An empty return value means the component
    should be dropped.
    """
    cleaned = UNSAFE_PATTERN.sub(replacement, value)
    if RESERVED_PATTERN.match(cleaned):
        return ""
    if WINDOWS_RESERVED_PATTERN.match(cleaned):
        cleaned = replacement + cleaned if replacement else "_" + cleaned
    cleaned = TRAILING_PATTERN.sub(replacement, cleaned)
    encoded = cleaned.encode("utf-8")
    if len(encoded) > MAX_SEGMENT_BYTES:
        cleaned = encoded[:MAX_SEGMENT_BYTES].decode("utf-8", "ignore")
    return cleaned
