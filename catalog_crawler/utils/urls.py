from __future__ import annotations

from typing import Iterable, List, Set
from urllib.parse import urljoin, urlparse, urlunparse

from ..exceptions import UrlError


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing fragments.
    """
    parts = list(urlparse(url))
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


def is_absolute(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def absolutize(base_url: str, href: str) -> str:
    """
    Resolve ``href`` against ``base_url``. Absolute links come back unchanged.

    Raises UrlError for empty or malformed links, or when a relative link
    cannot be resolved because the base itself is not absolute.
    """
    href = (href or "").strip()
    if not href:
        raise UrlError("empty link", href)
    try:
        if is_absolute(href):
            return href
        if not is_absolute(base_url or ""):
            raise UrlError(f"cannot resolve {href!r} against non-absolute base {base_url!r}", href)
        return urljoin(base_url, href)
    except ValueError as exc:
        raise UrlError(f"malformed link {href!r}: {exc}", href) from exc


def unique_urls(urls: Iterable[str]) -> List[str]:
    """Drop repeated URLs, keeping the first occurrence of each."""
    seen: Set[str] = set()
    out: List[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        out.append(url)
    return out
