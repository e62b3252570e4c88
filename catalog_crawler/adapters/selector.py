from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .base import ListingResult, ProductRecord
from ..config import Selectors
from ..exceptions import UrlError
from ..utils.http import Fetcher, Page
from ..utils.media import ImageCache
from ..utils.parsing import (
    attr_from_selector,
    attrs_from_selector,
    parse_availability,
    parse_price,
    select_one,
    table_to_dict,
    text_from_selector,
)
from ..utils.urls import absolutize, normalize_url, unique_urls

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"
DEFAULT_CATEGORY = "General"


class SelectorAdapter:
    """
    Configuration-driven adapter: every link and field comes from a CSS selector.

    Listing pages yield detail links and the next-page link; detail pages yield
    one ProductRecord. Missing selectors or nodes fall back to field defaults.
    """
    name = "selector"

    def __init__(self, selectors: Selectors, image_cache: Optional[ImageCache] = None) -> None:
        self.selectors = selectors
        self.image_cache = image_cache

    # ---- Listing pages ------------------------------------------------------

    def parse_listing(self, page: Page) -> ListingResult:
        return ListingResult(detail_links=self.detail_links(page), next_page=self.next_page(page))

    def detail_links(self, page: Page) -> List[str]:
        links: List[str] = []
        for href in attrs_from_selector(page.soup, self.selectors.detail_link, "href"):
            try:
                links.append(normalize_url(absolutize(page.url, href)))
            except UrlError as exc:
                logger.warning("Invalid product link %r on %s: %s", href, page.url, exc)
        return unique_urls(links)

    def next_page(self, page: Page) -> Optional[str]:
        href = attr_from_selector(page.soup, self.selectors.next_page_link, "href")
        if not href:
            return None
        try:
            return normalize_url(absolutize(page.url, href))
        except UrlError as exc:
            logger.warning("Invalid next page link %r on %s: %s", href, page.url, exc)
            return None

    # ---- Detail pages -------------------------------------------------------

    def extract(self, page: Page, client: Fetcher) -> ProductRecord:
        """Map a detail page to a record. The client is only used for the image."""
        category = self.extract_category(page)
        product_info = self.extract_product_info(page)
        availability_text = self.extract_availability_text(page)
        if availability_text is not None:
            product_info["availability_text"] = availability_text

        return ProductRecord(
            title=self.extract_title(page),
            description=self.extract_description(page),
            category=category,
            price=self.extract_price(page),
            availability=parse_availability(availability_text),
            image_path=self.save_image(self.extract_image_url(page), category, client),
            product_info=product_info,
            url=page.url,
        )

    def extract_title(self, page: Page) -> str:
        return text_from_selector(page.soup, self.selectors.title) or DEFAULT_TITLE

    def extract_description(self, page: Page) -> str:
        return text_from_selector(page.soup, self.selectors.description) or ""

    def extract_category(self, page: Page) -> str:
        return text_from_selector(page.soup, self.selectors.category) or DEFAULT_CATEGORY

    def extract_price(self, page: Page) -> float:
        return parse_price(text_from_selector(page.soup, self.selectors.price))

    def extract_availability_text(self, page: Page) -> Optional[str]:
        return text_from_selector(page.soup, self.selectors.availability)

    def extract_product_info(self, page: Page) -> Dict[str, str]:
        return table_to_dict(select_one(page.soup, self.selectors.product_info))

    def extract_image_url(self, page: Page) -> Optional[str]:
        src = attr_from_selector(page.soup, self.selectors.image, "src")
        if not src:
            return None
        try:
            return absolutize(page.url, src)
        except UrlError as exc:
            logger.warning("Invalid image link %r on %s: %s", src, page.url, exc)
            return None

    def save_image(self, image_url: Optional[str], category: str, client: Fetcher) -> str:
        if not image_url or self.image_cache is None:
            return ""
        try:
            return self.image_cache.save(image_url, category, client)
        except Exception:  # degrade to an empty image path
            logger.exception("Failed to save product image %s", image_url)
            return ""
