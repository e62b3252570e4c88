from __future__ import annotations

from typing import Any, Dict, Optional
import asyncio
import logging

try:
    from fastapi import FastAPI, HTTPException
    from pydantic import BaseModel, Field
except Exception as exc:  # pragma: no cover - optional dependency
    raise RuntimeError(
        "FastAPI not installed. Install with `pip install 'catalog-crawler[api]'` "
        "or avoid using the API server."
    ) from exc

from ..config import AppConfig, CrawlConfig
from ..engines.base import CrawlReport
from ..exceptions import ConfigurationError
from ..utils.loader import load_symbol
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="catalog_crawler API", version=__version__)


class CrawlRequest(BaseModel):
    start_page: str
    # Raw crawler keys: product_link, next_page_link, title, price, ...
    selectors: Dict[str, str] = Field(default_factory=dict)
    threads: Optional[int] = None
    agent: Optional[Dict[str, Any]] = None
    media_dir: Optional[str] = None
    engine: Optional[str] = None


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/crawl")
async def crawl(req: CrawlRequest) -> Dict[str, Any]:
    try:
        defaults = AppConfig.from_env()
        raw: Dict[str, Any] = {**defaults.crawler, **req.selectors, "start_page": req.start_page}
        if req.threads is not None:
            raw["threads"] = req.threads
        if req.agent is not None:
            raw["agent"] = req.agent
        cfg = CrawlConfig.from_mapping(raw, media_root=req.media_dir or defaults.media_dir)
        engine_cls = load_symbol(req.engine or defaults.engine)
    except ConfigurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    engine = engine_cls(cfg)
    # The engine blocks on network I/O; keep it off the event loop.
    report: CrawlReport = await asyncio.to_thread(engine.crawl)
    logger.info("API crawl of %s finished with %s items", cfg.start_page, len(report.items))
    return {
        "visited": report.visited_count,
        "count": len(report.items),
        "items": [item.to_dict() for item in report.items],
    }
