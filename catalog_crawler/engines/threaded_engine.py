from __future__ import annotations

import logging
import threading
from queue import Empty, Queue
from typing import Callable, List, Optional, Set

from .base import CrawlEngine, CrawlReport, CrawlState
from ..adapters.base import ProductRecord
from ..adapters.selector import SelectorAdapter
from ..collection import ItemCollection
from ..config import AgentSettings, CrawlConfig
from ..exceptions import FetchError
from ..utils.http import Fetcher, Page, create_client, log_fetch_failure
from ..utils.media import ImageCache
from ..utils.urls import normalize_url

logger = logging.getLogger(__name__)

ClientFactory = Callable[[AgentSettings], Fetcher]

METHOD_NOT_ALLOWED = 405


class ThreadedCrawlEngine(CrawlEngine):
    """
    Walks a paginated catalog and extracts one record per detail page.
    - Listing pages are fetched one at a time, in pagination order.
    - Detail links of a listing page are drained by a pool of worker threads.
    - Each worker owns its client; only the collection append is shared.
    """
    def __init__(
        self,
        config: CrawlConfig,
        *,
        client_factory: Optional[ClientFactory] = None,
        adapter: Optional[SelectorAdapter] = None,
        image_cache: Optional[ImageCache] = None,
        items: Optional[ItemCollection] = None,
    ) -> None:
        self.config = config
        self.client_factory = client_factory or create_client
        self.image_cache = image_cache or ImageCache(config.media_path, config.root_path)
        self.adapter = adapter or SelectorAdapter(config.selectors, self.image_cache)
        self.items = items if items is not None else ItemCollection()
        self.state = CrawlState()
        logger.info("Initialized crawler for %s (threads=%s)", config.start_page, config.threads)

    def crawl(self) -> CrawlReport:
        items = self.start_parse()
        return CrawlReport(items=items, state=self.state)

    def start_parse(self) -> ItemCollection:
        cfg = self.config
        state = self.state = CrawlState()

        # One client for the pagination loop and one per worker, reused across pages.
        client = self.client_factory(cfg.agent)
        worker_clients = [self.client_factory(cfg.agent) for _ in range(cfg.threads)]
        try:
            if not self.check_url_response(cfg.start_page, client):
                logger.error("Start page is not accessible: %s", cfg.start_page)
                return self.items

            current_url: Optional[str] = cfg.start_page
            # Requested and post-redirect URLs of every listing page seen so far.
            seen: Set[str] = set()
            while current_url:
                page = self.fetch_page(current_url, client)
                if page is None:
                    break

                state.pages_visited += 1
                state.listing_urls.append(normalize_url(current_url))
                seen.update((normalize_url(current_url), normalize_url(page.url)))
                logger.info("Fetched listing page #%s: %s", state.pages_visited, current_url)

                listing = self.adapter.parse_listing(page)
                self.parse_product_links(listing.detail_links, worker_clients)

                next_url = listing.next_page
                if next_url and next_url in seen:
                    logger.warning("Next page %s was already visited; stopping pagination", next_url)
                    break
                current_url = next_url

            logger.info(
                "Parsing finished: %s items collected from %s pages",
                len(self.items),
                state.pages_visited,
            )
        except Exception:
            logger.exception("Failed to parse website %s", cfg.start_page)
        finally:
            for c in [client, *worker_clients]:
                try:
                    c.close()
                except Exception as exc:
                    logger.debug("Failed to close client: %r", exc)
        return self.items

    def check_url_response(self, url: str, client: Fetcher) -> bool:
        """
        True when HEAD answers 200-399. Servers that reject HEAD with 405 get a GET instead.
        """
        if not url or not url.strip():
            return False
        try:
            status = client.head(url)
        except FetchError as exc:
            if exc.status == METHOD_NOT_ALLOWED:
                return self.fetch_page(url, client) is not None
            log_fetch_failure(logger, exc, f"URL is not accessible: {url}")
            return False
        if status == METHOD_NOT_ALLOWED:
            return self.fetch_page(url, client) is not None
        return 200 <= status <= 399

    def fetch_page(self, url: str, client: Fetcher) -> Optional[Page]:
        if not url or not url.strip():
            return None
        try:
            return client.get(url)
        except FetchError as exc:
            log_fetch_failure(logger, exc, f"Failed to fetch page {url}")
            return None

    def parse_product_links(self, links: List[str], clients: List[Fetcher]) -> None:
        if not links:
            return

        q: Queue[str] = Queue()
        for link in links:
            q.put(link)

        before = len(self.items)
        worker_count = min(len(clients), len(links))
        workers = [
            threading.Thread(
                target=self._worker,
                args=(q, clients[i]),
                name=f"catalog-worker-{i}",
                daemon=True,
            )
            for i in range(worker_count)
        ]
        for w in workers:
            w.start()
        for w in workers:
            w.join()

        self.state.links_dispatched += len(links)
        self.state.records_added += len(self.items) - before

    def parse_product_page(self, link: str, client: Fetcher) -> Optional[ProductRecord]:
        page = self.fetch_page(link, client)
        if page is None:
            return None
        record = self.adapter.extract(page, client)
        self.items.add_item(record)
        return record

    def _worker(self, q: "Queue[str]", client: Fetcher) -> None:
        while True:
            try:
                link = q.get_nowait()
            except Empty:
                return
            try:
                self.parse_product_page(link, client)
            except Exception:
                logger.exception("Worker crashed while parsing product page %s", link)
            finally:
                q.task_done()
