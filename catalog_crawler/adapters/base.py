from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class ItemLike(Protocol):
    """
    Capability shared by everything the collection can aggregate over.
    Keep this small so exporters and helpers stay decoupled from ProductRecord.
    """

    price: float
    category: str
    availability: bool


@dataclass
class ListingResult:
    """Links found on one listing page."""

    detail_links: List[str]
    next_page: Optional[str] = None


@dataclass(frozen=True)
class ProductRecord:
    """Structured data extracted from one detail page."""

    title: str = "Untitled"
    description: str = ""
    category: str = "General"
    price: float = 0.0
    availability: bool = False
    image_path: str = ""
    product_info: Dict[str, str] = field(default_factory=dict, hash=False)
    url: str = ""

    def __post_init__(self) -> None:
        price = float(self.price or 0.0)
        object.__setattr__(self, "price", max(price, 0.0))

    # Ordering compares prices only; equality still compares every field.
    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, ItemLike):
            return NotImplemented
        return self.price < float(other.price)

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, ItemLike):
            return NotImplemented
        return self.price <= float(other.price)

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, ItemLike):
            return NotImplemented
        return self.price > float(other.price)

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, ItemLike):
            return NotImplemented
        return self.price >= float(other.price)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "price": self.price,
            "availability": self.availability,
            "image_path": self.image_path,
            "product_info": dict(self.product_info),
            "url": self.url,
        }

    def __str__(self) -> str:
        parts = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"<ProductRecord {parts}>"
