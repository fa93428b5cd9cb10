from __future__ import annotations

from typing import Optional
from urllib.parse import urljoin, urlparse

WEB_SCHEMES = ("http", "https")


def resolve_target(candidate: str, last_source_url: str = "") -> Optional[str]:
    """Absolute http(s) URL for a navigation attempt, or ``None`` if rejected.

    Relative targets resolve against the last page that was actually loaded.
    Never touches the network.
    """
    trimmed = (candidate or "").strip()
    if not trimmed:
        return None

    try:
        parsed = urlparse(trimmed)
    except ValueError:
        return None

    if parsed.scheme:
        if parsed.scheme.lower() not in WEB_SCHEMES:
            return None
        return parsed.geturl()

    base = (last_source_url or "").strip()
    if not base:
        return None

    try:
        resolved = urlparse(urljoin(base, trimmed))
    except ValueError:
        return None

    if resolved.scheme.lower() not in WEB_SCHEMES:
        return None
    return resolved.geturl()
