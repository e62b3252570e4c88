from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Coroutine, Dict, List, Optional, Protocol, TypeVar

import aiohttp
from aiohttp import ClientSession, ClientTimeout
from bs4 import BeautifulSoup, Tag

from ..config import AgentSettings
from ..exceptions import FailureKind, FetchError

T = TypeVar("T")

USER_AGENT_ALIASES: Dict[str, str] = {
    "Windows Chrome": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Windows Edge": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
    ),
    "Windows Firefox": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mac Safari": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/17.2 Safari/605.1.15"
    ),
    "Mac Firefox": "Mozilla/5.0 (Macintosh; Intel Mac OS X 14.2; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Linux Firefox": "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
}

_LOG_LEVELS = {
    FailureKind.HTTP_STATUS: logging.WARNING,
    FailureKind.NETWORK: logging.ERROR,
    FailureKind.TIMEOUT: logging.ERROR,
    FailureKind.UNKNOWN: logging.ERROR,
}


def resolve_user_agent(alias: Optional[str]) -> str:
    """Map a browser alias to a full User-Agent header; unknown aliases pass through."""
    if not alias:
        return USER_AGENT_ALIASES["Windows Chrome"]
    return USER_AGENT_ALIASES.get(alias, alias)


@dataclass
class Page:
    """A fetched HTML page. The document is parsed on first use."""

    url: str
    status: int
    text: str
    _soup: Optional[BeautifulSoup] = field(default=None, repr=False, compare=False)

    @property
    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = BeautifulSoup(self.text, "html.parser")
        return self._soup

    def select(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)


class Fetcher(Protocol):
    """What the crawl engine needs from a web client."""

    def head(self, url: str) -> int:
        ...

    def get(self, url: str) -> Page:
        ...

    def download(self, url: str) -> bytes:
        ...

    def close(self) -> None:
        ...


def log_fetch_failure(log: logging.Logger, exc: FetchError, context: str) -> None:
    """Log a fetch failure at a level chosen from its classification."""
    log.log(_LOG_LEVELS.get(exc.kind, logging.ERROR), "%s [%s]: %s", context, exc.kind.value, exc)


class WebClient:
    """
    Blocking facade over an aiohttp session.

    Each client owns a private event loop, so a client must only be used by
    one thread at a time. Workers each get their own instance.
    """

    def __init__(self, settings: Optional[AgentSettings] = None) -> None:
        self.settings = settings or AgentSettings()
        self.user_agent = resolve_user_agent(self.settings.user_agent_alias)
        self._loop = asyncio.new_event_loop()
        self._session: Optional[ClientSession] = None
        self._closed = False

    def __enter__(self) -> "WebClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ---- Public API ---------------------------------------------------------

    def head(self, url: str) -> int:
        """Return the status code of a HEAD request. Error statuses raise FetchError."""
        return self._run(url, self._head(url))

    def get(self, url: str) -> Page:
        return self._run(url, self._get(url))

    def download(self, url: str) -> bytes:
        return self._run(url, self._download(url))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._session is not None and not self._session.closed:
                self._loop.run_until_complete(self._session.close())
        finally:
            self._session = None
            self._loop.close()

    # ---- Internals ----------------------------------------------------------

    def _run(self, url: str, coro: Coroutine[Any, Any, T]) -> T:
        if self._closed:
            coro.close()
            raise FetchError(url, FailureKind.UNKNOWN, message="client is closed")
        try:
            return self._loop.run_until_complete(coro)
        except FetchError:
            raise
        except aiohttp.ClientResponseError as exc:
            raise FetchError(url, FailureKind.HTTP_STATUS, status=exc.status, message=exc.message) from exc
        except asyncio.TimeoutError as exc:
            # ServerTimeoutError is also a ClientError, so this must come first.
            raise FetchError(url, FailureKind.TIMEOUT, message="request timed out") from exc
        except aiohttp.ClientError as exc:
            raise FetchError(url, FailureKind.NETWORK, message=repr(exc)) from exc
        except Exception as exc:  # broad catch so callers only deal with FetchError
            raise FetchError(url, FailureKind.UNKNOWN, message=repr(exc)) from exc

    def _ensure_session(self) -> ClientSession:
        if self._session is None:
            connector = aiohttp.TCPConnector(force_close=not self.settings.keep_alive)
            timeout = ClientTimeout(
                total=None,
                sock_connect=self.settings.open_timeout,
                sock_read=self.settings.read_timeout,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers={"User-Agent": self.user_agent},
            )
        return self._session

    async def _head(self, url: str) -> int:
        session = self._ensure_session()
        async with session.head(url, allow_redirects=True) as resp:
            resp.raise_for_status()
            return resp.status

    async def _get(self, url: str) -> Page:
        session = self._ensure_session()
        async with session.get(url) as resp:
            resp.raise_for_status()
            text = await resp.text(errors="replace")
            return Page(url=str(resp.url), status=resp.status, text=text)

    async def _download(self, url: str) -> bytes:
        session = self._ensure_session()
        async with session.get(url) as resp:
            resp.raise_for_status()
            return await resp.read()


def create_client(settings: Optional[AgentSettings] = None) -> WebClient:
    """
    Create a client for one worker.
    """
    # Note: caller is responsible for closing the client (client.close()).
    return WebClient(settings)
