from __future__ import annotations

from dataclasses import dataclass, field
from typing import List
from abc import ABC, abstractmethod

from ..collection import ItemCollection


@dataclass
class CrawlState:
    """Counters for a single crawl run."""

    pages_visited: int = 0
    listing_urls: List[str] = field(default_factory=list)
    links_dispatched: int = 0
    records_added: int = 0


@dataclass
class CrawlReport:
    items: ItemCollection
    state: CrawlState = field(default_factory=CrawlState)

    @property
    def visited_count(self) -> int:
        return self.state.pages_visited


class CrawlEngine(ABC):
    """
    Abstract engine interface. Implementations own the crawl lifecycle.
    """
    @abstractmethod
    def start_parse(self) -> ItemCollection:  # pragma: no cover - interface
        ...

    @abstractmethod
    def crawl(self) -> CrawlReport:  # pragma: no cover - interface
        ...
