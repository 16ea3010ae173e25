"""
Enforcement rules — which URLs are never blocked, and how a URL's domain
is extracted for comparison against the focus target.
"""

from __future__ import annotations

from typing import Tuple
from urllib.parse import urlparse

# Browser-internal pages and the extension's own pages stay reachable.
INTERNAL_PREFIXES: Tuple[str, ...] = (
    "chrome://",
    "chrome-extension://",
    "edge://",
    "about:",
)

NEW_TAB_URL = "chrome://newtab/"


def hostname(url: str) -> str:
    """Return the lower-cased hostname of *url*, or *url* itself if it has none."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return url
    return host or url


def is_internal_url(url: str) -> bool:
    return url.lower().startswith(INTERNAL_PREFIXES)


def is_valid_focus_url(url: str) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.hostname)
