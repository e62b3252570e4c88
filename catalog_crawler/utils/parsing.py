from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Union

from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

logger = logging.getLogger(__name__)

Node = Union[BeautifulSoup, Tag]

_WHITESPACE = re.compile(r"\s+")
_PRICE_CHARS = re.compile(r"[^\d.,]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_SEGMENT = re.compile(r"[^a-z0-9]+")

AVAILABILITY_MARKERS = ("in stock", "available")


def normalize_whitespace(text: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


def select_one(root: Optional[Node], selector: Optional[str]) -> Optional[Tag]:
    """First node matching ``selector``; None for a missing root, selector or match."""
    if root is None or not selector:
        return None
    try:
        return root.select_one(selector)
    except SelectorSyntaxError as exc:
        logger.warning("Invalid selector %r: %s", selector, exc)
        return None


def select_all(root: Optional[Node], selector: Optional[str]) -> List[Tag]:
    if root is None or not selector:
        return []
    try:
        return list(root.select(selector))
    except SelectorSyntaxError as exc:
        logger.warning("Invalid selector %r: %s", selector, exc)
        return []


def text_from_selector(root: Optional[Node], selector: Optional[str]) -> Optional[str]:
    """Whitespace-normalized text of the first match, or None when nothing matches."""
    node = select_one(root, selector)
    if node is None:
        return None
    return normalize_whitespace(node.get_text(" "))


def attr_from_selector(root: Optional[Node], selector: Optional[str], attr: str) -> Optional[str]:
    node = select_one(root, selector)
    if node is None:
        return None
    value = node.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    return value or None


def attrs_from_selector(root: Optional[Node], selector: Optional[str], attr: str) -> List[str]:
    """Attribute values of every match, skipping nodes that lack the attribute."""
    out: List[str] = []
    for node in select_all(root, selector):
        value = node.get(attr)
        if value:
            out.append(value if isinstance(value, str) else " ".join(value))
    return out


def parse_price(text: Optional[str]) -> float:
    """
    Turn a price label into a float: "$12,50" -> 12.5, "£1,234" -> 1.234.
    Only digits, commas and periods are kept; commas act as decimal points.
    """
    if not text:
        return 0.0
    normalized = _PRICE_CHARS.sub("", text).replace(",", ".")
    match = _LEADING_NUMBER.match(normalized)
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def parse_availability(text: Optional[str]) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(marker in lowered for marker in AVAILABILITY_MARKERS)


def attribute_key(header: str) -> str:
    return _WHITESPACE.sub("_", header.strip().lower())


def table_to_dict(table: Optional[Tag]) -> Dict[str, str]:
    """
    Read a two-column info table: each row's <th> becomes a key, its <td> the value.
    Rows without a header cell are skipped.
    """
    out: Dict[str, str] = {}
    if table is None:
        return out
    for row in table.select("tr"):
        header = row.find("th")
        if header is None:
            continue
        key = attribute_key(header.get_text())
        if not key:
            continue
        value = row.find("td")
        out[key] = value.get_text().strip() if value is not None else ""
    return out


def sanitize_segment(text: Optional[str], fallback: str = "item") -> str:
    """Filesystem-safe path segment: lowercase, non-alphanumeric runs become '_'."""
    sanitized = _SEGMENT.sub("_", (text or "").lower()).strip("_")
    return sanitized or fallback
