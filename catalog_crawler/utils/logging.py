from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(
    level: str | int | None = None,
    directory: Optional[str] = None,
    application_log: Optional[str] = None,
    error_log: Optional[str] = None,
) -> None:
    """
    Configure application logging with a consistent formatter.

    Besides the console, records can go to an application log file and an
    ERROR-only error log, both placed under ``directory`` (default ``logs``).
    """
    if level is None:
        level = os.getenv("CRAWLER_LOG_LEVEL", "INFO")

    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if application_log or error_log:
        log_dir = Path(directory or "logs")
        log_dir.mkdir(parents=True, exist_ok=True)
        if application_log:
            handlers.append(logging.FileHandler(log_dir / application_log, encoding="utf-8"))
        if error_log:
            error_handler = logging.FileHandler(log_dir / error_log, encoding="utf-8")
            error_handler.setLevel(logging.ERROR)
            handlers.append(error_handler)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
