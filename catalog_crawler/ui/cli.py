from __future__ import annotations

import argparse
import logging
import os
from typing import List

from ..config import AppConfig
from ..engines.base import CrawlReport
from ..exceptions import ConfigurationError, ExportError
from ..export.base import resolve_exporter
from ..utils.archive import archive_directory
from ..utils.loader import load_symbol
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Paginated product catalog crawler")
    p.add_argument("start_page", nargs="?", default=None, help="Seed listing page URL (overrides config)")
    p.add_argument("--config", type=str, help="Path to a YAML or JSON config file", default=None)
    p.add_argument("--threads", type=int, default=None, help="Worker pool size (default from config)")
    p.add_argument("--media-dir", type=str, default=None, help="Directory for downloaded images")
    p.add_argument("--output-dir", type=str, default=None, help="Directory for exported files")
    p.add_argument("--exporter", action="append", default=None,
                   help="Exporter name (json, csv, yaml, text, sqlite) or dotted path; repeatable")
    p.add_argument("--engine", type=str, default=None, help="Engine dotted path (module:ClassName)")
    p.add_argument("--archive", action="store_true", help="Zip the output directory after exporting")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of CLI crawl")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config:
        cfg = AppConfig.from_file(args.config)
    else:
        cfg = AppConfig.from_env()

    if args.start_page:
        cfg.crawler["start_page"] = args.start_page
    if args.threads is not None:
        cfg.crawler["threads"] = args.threads
    if args.media_dir:
        cfg.media_dir = args.media_dir
    if args.output_dir:
        cfg.output_dir = args.output_dir
    if args.exporter:
        cfg.exporters = list(args.exporter)
    if args.engine:
        cfg.engine = args.engine
    if args.archive:
        cfg.archive = True

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    try:
        import uvicorn  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dep
        raise SystemExit("To run the API, install dependencies: pip install 'catalog-crawler[api]'") from exc
    uvicorn.run("catalog_crawler.apis.app:app", host=host, port=port)


def export_report(report: CrawlReport, cfg: AppConfig) -> List[str]:
    """Run every configured exporter; a failing exporter does not stop the others."""
    written: List[str] = []
    for name in cfg.exporters:
        dotted, target = resolve_exporter(name)
        path = os.path.join(cfg.output_dir, target)
        try:
            exporter = load_symbol(dotted)()
            written.append(exporter.export(report.items, path))
        except (ConfigurationError, ExportError) as exc:
            logger.error("Exporter %s failed: %s", name, exc)
            continue
        logger.info("Data saved with %s exporter: %s", name, path)
    return written


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.serve:
        setup_logging(args.log_level)
        run_server(args.host, args.port)
        return 0

    try:
        cfg = _load_config(args)
    except ConfigurationError as exc:
        setup_logging(args.log_level)
        logger.error("Invalid configuration: %s", exc)
        return 1

    setup_logging(
        args.log_level or cfg.logging.level,
        directory=cfg.logging.directory,
        application_log=cfg.logging.application_log,
        error_log=cfg.logging.error_log,
    )

    # Dynamic engine loading so upgrades don't require code edits.
    try:
        engine_cls = load_symbol(cfg.engine)
        engine = engine_cls(cfg.crawl_config())
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    report: CrawlReport = engine.crawl()
    written = export_report(report, cfg)

    if cfg.archive:
        archive_directory(cfg.output_dir)

    logger.info("Visited: %s | Products: %s | Output: %s",
                report.visited_count,
                len(report.items),
                ", ".join(written) or "-")
    return 0
