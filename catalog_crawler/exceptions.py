"""
Exceptions raised by the catalog crawler.

Only ``ConfigurationError`` is meant to reach callers of the crawl engine;
the others are caught close to where they happen and turned into log entries
and default values.
"""
from __future__ import annotations

import enum
from typing import Optional


class CrawlerError(Exception):
    """Base class for crawler exceptions."""


class ConfigurationError(CrawlerError):
    """Raised when a configuration is missing required values or is malformed."""


class UrlError(CrawlerError):
    """Raised when a link cannot be turned into an absolute URL."""

    def __init__(self, message: str, href: Optional[str] = None) -> None:
        super().__init__(message)
        self.href = href


class FailureKind(str, enum.Enum):
    HTTP_STATUS = "http-status-error"
    NETWORK = "network-error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class FetchError(CrawlerError):
    """
    Raised by the web client when a request fails.

    ``kind`` classifies the failure; ``status`` is set for HTTP status errors.
    """

    def __init__(self, url: str, kind: FailureKind, status: Optional[int] = None,
                 message: str = "") -> None:
        detail = message or kind.value
        if status is not None:
            detail = f"{detail} (status {status})"
        super().__init__(f"{url}: {detail}")
        self.url = url
        self.kind = kind
        self.status = status


class ExportError(CrawlerError):
    """Raised when an exporter fails to write its output."""
