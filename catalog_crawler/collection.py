from __future__ import annotations

import logging
import sys
import threading
from typing import Iterable, Iterator, List, Optional, TextIO, Union, overload

from .adapters.base import ItemLike, ProductRecord

logger = logging.getLogger(__name__)


class ItemCollection:
    """
    Ordered collection of records shared by crawl workers.
    Every mutation goes through a single lock; reads work on snapshots.
    """

    def __init__(self, items: Optional[Iterable[ProductRecord]] = None) -> None:
        self._items: List[ProductRecord] = list(items or [])
        self._lock = threading.Lock()

    # ---- Mutation -----------------------------------------------------------

    def add_item(self, item: ProductRecord) -> "ItemCollection":
        with self._lock:
            self._items.append(item)
        logger.debug("Added item: %s", item)
        return self

    def extend(self, items: Iterable[ProductRecord]) -> "ItemCollection":
        batch = list(items)
        with self._lock:
            self._items.extend(batch)
        return self

    def remove_item(self, item_or_index: Union[int, ProductRecord]) -> Optional[ProductRecord]:
        """Remove by position or by value; returns the removed record or None."""
        with self._lock:
            if isinstance(item_or_index, int):
                try:
                    return self._items.pop(item_or_index)
                except IndexError:
                    return None
            try:
                self._items.remove(item_or_index)
            except ValueError:
                return None
            return item_or_index

    def clear(self) -> "ItemCollection":
        with self._lock:
            count = len(self._items)
            self._items.clear()
        logger.debug("Cleared %s items", count)
        return self

    # ---- Sequence protocol --------------------------------------------------

    @property
    def items(self) -> List[ProductRecord]:
        with self._lock:
            return list(self._items)

    def __iter__(self) -> Iterator[ProductRecord]:
        return iter(self.items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @overload
    def __getitem__(self, index: int) -> ProductRecord: ...

    @overload
    def __getitem__(self, index: slice) -> List[ProductRecord]: ...

    def __getitem__(self, index):
        with self._lock:
            return self._items[index]

    def __repr__(self) -> str:
        return f"<ItemCollection items={len(self)}>"

    # ---- Display and aggregates ---------------------------------------------

    def show_all_items(self, stream: Optional[TextIO] = None) -> None:
        out = stream or sys.stdout
        items = self.items
        for index, item in enumerate(items):
            out.write(f"[{index}] {item}\n")
        logger.debug("Displayed %s items", len(items))

    def total_price(self) -> float:
        return sum(_price(i) for i in self)

    def sort_by_price(self, direction: str = "asc") -> List[ProductRecord]:
        return sorted(self, key=_price, reverse=direction.lower() == "desc")

    def unique_categories(self) -> List[str]:
        seen: List[str] = []
        for item in self:
            category = getattr(item, "category", None)
            if category is not None and category not in seen:
                seen.append(category)
        return seen

    def count_by_category(self, category: str) -> int:
        return sum(1 for i in self if isinstance(i, ItemLike) and i.category == category)

    def none_in_category(self, category: str) -> bool:
        return self.count_by_category(category) == 0

    def any_available(self) -> bool:
        return any(isinstance(i, ItemLike) and i.availability for i in self)

    def all_available(self) -> bool:
        return all(isinstance(i, ItemLike) and i.availability for i in self)


def _price(item: object) -> float:
    return float(item.price) if isinstance(item, ItemLike) else 0.0
