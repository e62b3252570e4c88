"""
Tests for the aiohttp-backed WebClient against a local HTTP server.
"""
import logging
import socket

import pytest

from catalog_crawler.config import AgentSettings
from catalog_crawler.exceptions import FailureKind, FetchError
from catalog_crawler.utils.http import (
    USER_AGENT_ALIASES,
    WebClient,
    create_client,
    log_fetch_failure,
    resolve_user_agent,
)

from conftest import JPG_BYTES


@pytest.fixture
def client():
    c = create_client(AgentSettings(read_timeout=2, open_timeout=2))
    yield c
    c.close()


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestWebClient:
    def test_get_returns_parsed_page(self, client, catalog_site):
        page = client.get(catalog_site.url("/products/a.html"))
        assert page.status == 200
        assert page.url == catalog_site.url("/products/a.html")
        assert page.select_one("h1").get_text() == "Alpha"
        assert len(page.select("tr")) == 3

    def test_head_returns_status(self, client, catalog_site):
        assert client.head(catalog_site.url("/catalog/page-1.html")) == 200
        assert catalog_site.hits[("HEAD", "/catalog/page-1.html")] == 1

    def test_head_405_is_an_http_status_error(self, client, catalog_site):
        catalog_site.reject_head = True
        with pytest.raises(FetchError) as info:
            client.head(catalog_site.url("/catalog/page-1.html"))
        assert info.value.kind is FailureKind.HTTP_STATUS
        assert info.value.status == 405

    def test_download_returns_bytes(self, client, catalog_site):
        assert client.download(catalog_site.url("/media/shared.jpg")) == JPG_BYTES

    def test_missing_page_is_http_status_error(self, client, catalog_site):
        with pytest.raises(FetchError) as info:
            client.get(catalog_site.url("/nope.html"))
        assert info.value.kind is FailureKind.HTTP_STATUS
        assert info.value.status == 404

    def test_connection_refused_is_network_error(self, client):
        with pytest.raises(FetchError) as info:
            client.get(f"http://127.0.0.1:{_free_port()}/")
        assert info.value.kind is FailureKind.NETWORK

    def test_slow_response_is_timeout(self, catalog_site):
        catalog_site.delays["/products/a.html"] = 1.5
        with WebClient(AgentSettings(read_timeout=0.3, open_timeout=1)) as slow:
            with pytest.raises(FetchError) as info:
                slow.get(catalog_site.url("/products/a.html"))
        assert info.value.kind is FailureKind.TIMEOUT

    def test_user_agent_header_from_alias(self, catalog_site):
        with WebClient(AgentSettings(user_agent_alias="Linux Firefox")) as c:
            c.get(catalog_site.url("/catalog/page-2.html"))
        assert catalog_site.user_agents[-1] == USER_AGENT_ALIASES["Linux Firefox"]

    def test_closed_client_refuses_requests(self, catalog_site):
        c = WebClient()
        c.close()
        c.close()
        with pytest.raises(FetchError) as info:
            c.get(catalog_site.url("/catalog/page-2.html"))
        assert info.value.kind is FailureKind.UNKNOWN

    def test_no_keep_alive(self, catalog_site):
        with WebClient(AgentSettings(keep_alive=False)) as c:
            assert c.get(catalog_site.url("/catalog/page-2.html")).status == 200
            assert c.get(catalog_site.url("/catalog/page-2.html")).status == 200


def test_resolve_user_agent():
    assert resolve_user_agent("Windows Chrome") == USER_AGENT_ALIASES["Windows Chrome"]
    assert resolve_user_agent(None) == USER_AGENT_ALIASES["Windows Chrome"]
    assert resolve_user_agent("my-bot/1.0") == "my-bot/1.0"


def test_log_level_follows_failure_kind(caplog):
    log = logging.getLogger("catalog_crawler.tests")
    with caplog.at_level(logging.DEBUG, logger="catalog_crawler.tests"):
        log_fetch_failure(log, FetchError("http://x", FailureKind.HTTP_STATUS, status=404), "fetch")
        log_fetch_failure(log, FetchError("http://x", FailureKind.TIMEOUT), "fetch")
    assert [r.levelno for r in caplog.records] == [logging.WARNING, logging.ERROR]
    assert "http-status-error" in caplog.records[0].getMessage()
