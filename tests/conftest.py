"""
Shared fixtures: a small product catalog served over real HTTP, and an
in-memory web double for tests that should not touch the network.
"""
import threading
import time
from collections import Counter
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Optional, Tuple

import pytest

from catalog_crawler.config import AgentSettings
from catalog_crawler.exceptions import FailureKind, FetchError
from catalog_crawler.utils.http import Page

SELECTORS = {
    "product_link": "article.product_pod h3 a",
    "next_page_link": "li.next a",
    "title": "div.product_main h1",
    "price": "div.product_main p.price_color",
    "description": "#product_description + p",
    "category": "ul.breadcrumb li:nth-of-type(3) a",
    "availability": "div.product_main p.availability",
    "image": "#product_gallery img",
    "product_info": "table.table-striped",
}

LISTING_TEMPLATE = """<html><body>
<section>{articles}</section>
{pager}
</body></html>"""

ARTICLE_TEMPLATE = '<article class="product_pod"><h3><a href="{href}">{label}</a></h3></article>'

PRODUCT_TEMPLATE = """<html><body>
<ul class="breadcrumb">
  <li><a href="/">Home</a></li>
  <li><a href="/catalog/">Books</a></li>
  <li><a href="#">{category}</a></li>
</ul>
<div class="product_main">
  <h1>{title}</h1>
  <p class="price_color">{price}</p>
  <p class="availability">
     {availability}
  </p>
</div>
<div id="product_gallery"><img src="{image}" alt="{title}"></div>
<div id="product_description"><h2>Product Description</h2></div>
<p>{description}</p>
<table class="table table-striped">
  <tr><th>UPC</th><td>{upc}</td></tr>
  <tr><th>Number of   reviews</th><td> 3 </td></tr>
  <tr><td>row without header</td></tr>
</table>
</body></html>"""

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPG_BYTES = b"\xff\xd8\xff\xe0" + b"\x01" * 64


def listing_html(links: List[str], next_href: Optional[str] = None) -> str:
    articles = "\n".join(ARTICLE_TEMPLATE.format(href=h, label=f"item {i}") for i, h in enumerate(links))
    pager = f'<ul class="pager"><li class="next"><a href="{next_href}">next</a></li></ul>' if next_href else ""
    return LISTING_TEMPLATE.format(articles=articles, pager=pager)


def product_html(title: str, price: str = "£10.00", category: str = "Poetry",
                 availability: str = "In stock (5 available)", image: str = "/media/cover.jpg",
                 description: str = "A fine book.", upc: str = "abc123") -> str:
    return PRODUCT_TEMPLATE.format(title=title, price=price, category=category,
                                   availability=availability, image=image,
                                   description=description, upc=upc)


# ---- Local HTTP catalog ------------------------------------------------------


class CatalogSite:
    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self.routes: Dict[str, Tuple[int, str, bytes]] = {}
        self.hits: Counter = Counter()
        self.user_agents: List[str] = []
        self.reject_head = False
        self.delays: Dict[str, float] = {}
        self._lock = threading.Lock()

    def url(self, path: str) -> str:
        return self.base_url + path

    def add_html(self, path: str, html: str, status: int = 200) -> None:
        self.routes[path] = (status, "text/html; charset=utf-8", html.encode("utf-8"))

    def add_binary(self, path: str, data: bytes, content_type: str = "image/jpeg") -> None:
        self.routes[path] = (200, content_type, data)

    def record(self, method: str, path: str, user_agent: str) -> None:
        with self._lock:
            self.hits[(method, path)] += 1
            self.user_agents.append(user_agent)


class _CatalogHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        self._respond(send_body=True)

    def do_HEAD(self) -> None:
        site: CatalogSite = self.server.site
        if site.reject_head:
            site.record("HEAD", self.path, self.headers.get("User-Agent", ""))
            self.send_response(405)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        self._respond(send_body=False)

    def _respond(self, send_body: bool) -> None:
        site: CatalogSite = self.server.site
        path = self.path.split("?", 1)[0]
        site.record(self.command, path, self.headers.get("User-Agent", ""))
        if path in site.delays:
            time.sleep(site.delays[path])

        route = site.routes.get(path)
        if route is None:
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return

        status, content_type, body = route
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if send_body:
            self.wfile.write(body)

    def log_message(self, format, *args) -> None:
        pass


def build_catalog(site: CatalogSite) -> None:
    """Two listing pages: page 1 has products a and b, page 2 has product c."""
    site.add_html("/catalog/page-1.html", listing_html(
        ["../products/a.html", "/products/b.html", "../products/a.html#reviews"],
        next_href="page-2.html",
    ))
    site.add_html("/catalog/page-2.html", listing_html(["/products/c.html"]))
    site.add_html("/products/a.html", product_html(
        "Alpha", price="£51.77", category="Travel", image="../media/alpha.png", upc="a-1"))
    site.add_html("/products/b.html", product_html(
        "Beta", price="$12,50", category="Poetry", availability="Out of stock", image="/media/shared.jpg", upc="b-2"))
    site.add_html("/products/c.html", product_html(
        "Gamma", price="£3.00", category="Poetry", image="/media/shared.jpg", upc="c-3"))
    site.add_binary("/media/alpha.png", PNG_BYTES, "image/png")
    site.add_binary("/media/shared.jpg", JPG_BYTES)


@pytest.fixture
def catalog_site():
    """A threaded HTTP server on localhost serving the test catalog."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _CatalogHandler)
    server.daemon_threads = True
    host, port = server.server_address[:2]
    site = CatalogSite(f"http://{host}:{port}")
    server.site = site
    build_catalog(site)

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield site
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture
def catalog_config(catalog_site):
    return {"start_page": catalog_site.url("/catalog/page-1.html"), **SELECTORS}


# ---- In-memory web double ----------------------------------------------------


class FakeWeb:
    """Pages and binaries keyed by URL, with per-URL request counters."""

    def __init__(self) -> None:
        self.pages: Dict[str, str] = {}
        self.binaries: Dict[str, bytes] = {}
        self.head_status: Dict[str, int] = {}
        self.failures: Dict[str, FailureKind] = {}
        # Requested URL -> final URL reported on the fetched page.
        self.redirects: Dict[str, str] = {}
        self.gets: Counter = Counter()
        self.heads: Counter = Counter()
        self.downloads: Counter = Counter()
        self.clients: List["FakeClient"] = []
        self.lock = threading.Lock()

    def factory(self, settings: AgentSettings) -> "FakeClient":
        client = FakeClient(self, settings)
        self.clients.append(client)
        return client


class FakeClient:
    def __init__(self, web: FakeWeb, settings: AgentSettings) -> None:
        self.web = web
        self.settings = settings
        self.closed = False
        self.threads = set()

    def _touch(self, counter: Counter, url: str) -> None:
        with self.web.lock:
            counter[url] += 1
            self.threads.add(threading.get_ident())
        if url in self.web.failures:
            raise FetchError(url, self.web.failures[url])

    def head(self, url: str) -> int:
        self._touch(self.web.heads, url)
        final = self.web.redirects.get(url, url)
        status = self.web.head_status.get(url, 200 if final in self.web.pages else 404)
        if status >= 400:
            raise FetchError(url, FailureKind.HTTP_STATUS, status=status)
        return status

    def get(self, url: str) -> Page:
        self._touch(self.web.gets, url)
        final = self.web.redirects.get(url, url)
        if final not in self.web.pages:
            raise FetchError(url, FailureKind.HTTP_STATUS, status=404)
        return Page(url=final, status=200, text=self.web.pages[final])

    def download(self, url: str) -> bytes:
        self._touch(self.web.downloads, url)
        if url not in self.web.binaries:
            raise FetchError(url, FailureKind.HTTP_STATUS, status=404)
        return self.web.binaries[url]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_web():
    return FakeWeb()
