from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional
from pathlib import Path
import logging
import os
import json

import yaml

from .exceptions import ConfigurationError
from .version import CONFIG_SCHEMA_VERSION

DEFAULT_THREADS = 4
DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT_ALIAS = "Windows Chrome"
DEFAULT_ENGINE = "catalog_crawler.engines.threaded_engine:ThreadedCrawlEngine"

_YAML_SUFFIXES = (".yml", ".yaml")
_TRUE_WORDS = ("1", "true", "yes", "on")
_FALSE_WORDS = ("0", "false", "no", "off")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selectors:
    """CSS selectors used to pull links and fields out of catalog pages."""

    detail_link: str
    next_page_link: Optional[str] = None
    title: Optional[str] = None
    price: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    availability: Optional[str] = None
    product_info: Optional[str] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "Selectors":
        detail = raw.get("book_details_link") or raw.get("product_link") or raw.get("detail_link")
        return cls(
            detail_link=str(detail or "").strip(),
            next_page_link=_optional_str(raw.get("next_page_link")),
            title=_optional_str(raw.get("title")),
            price=_optional_str(raw.get("price")),
            description=_optional_str(raw.get("description")),
            category=_optional_str(raw.get("category")),
            image=_optional_str(raw.get("image")),
            availability=_optional_str(raw.get("availability")),
            product_info=_optional_str(raw.get("product_info")),
        )


@dataclass(frozen=True)
class AgentSettings:
    """Per-client HTTP settings; every worker builds its client from these."""

    user_agent_alias: str = DEFAULT_USER_AGENT_ALIAS
    read_timeout: float = DEFAULT_TIMEOUT
    open_timeout: float = DEFAULT_TIMEOUT
    keep_alive: bool = True

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "AgentSettings":
        return cls(
            user_agent_alias=str(raw.get("user_agent_alias") or DEFAULT_USER_AGENT_ALIAS),
            read_timeout=_positive_number(raw.get("read_timeout"), DEFAULT_TIMEOUT),
            open_timeout=_positive_number(raw.get("open_timeout"), DEFAULT_TIMEOUT),
            keep_alive=_flag(raw.get("keep_alive"), True),
        )


@dataclass(frozen=True)
class CrawlConfig:
    """
    Immutable settings for one crawl run.
    Construction validates the seed URL, the detail-link selector and the pool size.
    """
    start_page: str
    selectors: Selectors
    threads: int = DEFAULT_THREADS
    agent: AgentSettings = field(default_factory=AgentSettings)
    media_root: str = "media"
    # Image paths stored on records are relative to this directory.
    root_dir: Optional[str] = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not self.start_page or not str(self.start_page).strip():
            raise ConfigurationError("start_page cannot be empty; provide the catalog seed URL.")
        if not self.selectors.detail_link:
            raise ConfigurationError("a detail-link selector (product_link or book_details_link) is required.")
        if not isinstance(self.threads, int) or isinstance(self.threads, bool) or self.threads <= 0:
            raise ConfigurationError(f"threads must be a positive integer, got {self.threads!r}")

    @property
    def media_path(self) -> Path:
        return Path(self.media_root).expanduser().resolve()

    @property
    def root_path(self) -> Path:
        if self.root_dir:
            return Path(self.root_dir).expanduser().resolve()
        return self.media_path.parent

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(
        cls,
        raw: Optional[Mapping[str, Any]],
        *,
        media_root: str = "media",
        root_dir: Optional[str] = None,
    ) -> "CrawlConfig":
        """
        Build a crawl config from the raw ``crawler`` section of an application config.
        """
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ConfigurationError("crawler configuration must be a mapping")

        agent_raw = raw.get("agent") or {}
        if not isinstance(agent_raw, Mapping):
            raise ConfigurationError("crawler.agent must be a mapping")

        threads = raw.get("threads") or agent_raw.get("threads")
        return cls(
            start_page=str(raw.get("start_page") or "").strip(),
            selectors=Selectors.from_mapping(raw),
            threads=_positive_int(threads, DEFAULT_THREADS),
            agent=AgentSettings.from_mapping(agent_raw),
            media_root=media_root,
            root_dir=root_dir,
        )


@dataclass
class LoggingSettings:
    level: str = "INFO"
    directory: Optional[str] = None
    application_log: Optional[str] = None
    error_log: Optional[str] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "LoggingSettings":
        files = raw.get("files") or {}
        return cls(
            level=str(raw.get("level") or "INFO"),
            directory=raw.get("directory"),
            application_log=files.get("application_log"),
            error_log=files.get("error_log"),
        )


@dataclass
class AppConfig:
    """
    Application-level configuration: the crawler section plus everything the
    surrounding tooling (logging, exporters, archiving) needs.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    crawler: Dict[str, Any] = field(default_factory=dict)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    media_dir: str = "media"
    root_dir: Optional[str] = None
    output_dir: str = "output"
    # Short exporter names (see export.EXPORTERS) or dotted paths.
    exporters: List[str] = field(default_factory=lambda: ["json"])
    # Dotted path for the engine to allow runtime swapping without code changes.
    engine: str = DEFAULT_ENGINE
    archive: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def crawl_config(self) -> CrawlConfig:
        media_root = self.media_dir
        if self.root_dir and not os.path.isabs(media_root):
            media_root = os.path.join(self.root_dir, media_root)
        return CrawlConfig.from_mapping(self.crawler, media_root=media_root, root_dir=self.root_dir)

    # ---------- Loaders ----------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppConfig":
        data = migrate_config(dict(data))
        exporters = data.get("exporters") or ["json"]
        if isinstance(exporters, str):
            exporters = [e.strip() for e in exporters.split(",") if e.strip()]
        return cls(
            schema_version=int(data.get("schema_version", CONFIG_SCHEMA_VERSION)),
            crawler=dict(data.get("crawler") or {}),
            logging=LoggingSettings.from_mapping(data.get("logging") or {}),
            media_dir=str(data.get("media_dir") or "media"),
            root_dir=data.get("root_dir"),
            output_dir=str(data.get("output_dir") or "output"),
            exporters=list(exporters),
            engine=str(data.get("engine") or DEFAULT_ENGINE),
            archive=_flag(data.get("archive"), False),
        )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Build config from environment variables (all optional).
        """
        def _get(name: str, default: str = "") -> str:
            return os.getenv(name, default)

        def _number(name: str, default: float, cast: Any) -> Any:
            raw = _get(name, str(default))
            try:
                return cast(raw)
            except ValueError as exc:
                raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc

        crawler: Dict[str, Any] = {
            "start_page": _get("CRAWLER_START_PAGE"),
            "product_link": _get("CRAWLER_PRODUCT_LINK"),
            "next_page_link": _get("CRAWLER_NEXT_PAGE_LINK") or None,
            "threads": _number("CRAWLER_THREADS", DEFAULT_THREADS, int),
            "agent": {
                "user_agent_alias": _get("CRAWLER_USER_AGENT_ALIAS", DEFAULT_USER_AGENT_ALIAS),
                "read_timeout": _number("CRAWLER_READ_TIMEOUT", DEFAULT_TIMEOUT, float),
                "open_timeout": _number("CRAWLER_OPEN_TIMEOUT", DEFAULT_TIMEOUT, float),
                "keep_alive": _flag(_get("CRAWLER_KEEP_ALIVE"), True),
            },
        }
        for name in ("title", "price", "description", "category", "image", "availability", "product_info"):
            value = _get(f"CRAWLER_SELECTOR_{name.upper()}")
            if value:
                crawler[name] = value

        return cls.from_dict({
            "crawler": crawler,
            "logging": {"level": _get("CRAWLER_LOG_LEVEL", "INFO"), "directory": _get("CRAWLER_LOG_DIR") or None},
            "media_dir": _get("CRAWLER_MEDIA_DIR", "media"),
            "root_dir": _get("CRAWLER_ROOT_DIR") or None,
            "output_dir": _get("CRAWLER_OUTPUT_DIR", "output"),
            "exporters": _get("CRAWLER_EXPORTERS", "json"),
            "engine": _get("CRAWLER_ENGINE", DEFAULT_ENGINE),
        })

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "AppConfig":
        """
        Load configuration from a YAML or JSON file.

        A ``yaml_dir`` key points at a directory of extra YAML files; each one is
        loaded under its file stem and deep-merged over the main document.
        """
        data = _load_document(Path(path))
        yaml_dir = data.get("yaml_dir")
        if yaml_dir:
            directory = Path(yaml_dir)
            if not directory.is_absolute():
                directory = Path(path).parent / directory
            if directory.is_dir():
                data = merge_configs(data, _load_directory(directory))
        return cls.from_dict(data)

    # ---------- Validation ----------

    def validate(self) -> None:
        if not self.exporters:
            raise ConfigurationError("at least one exporter must be configured")
        self.crawl_config()
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # v1 kept the export targets under "output_path" and had no crawler section.
        raw.pop("output_path", None)
        raw.setdefault("crawler", {})
        raw["schema_version"] = 2

    raw.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return raw


def merge_configs(base: Mapping[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in extra.items():
        if isinstance(merged.get(key), Mapping) and isinstance(value, Mapping):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_document(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in _YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Error loading configuration from {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {path} must be a mapping")
    return data


def _load_directory(directory: Path) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for file_path in sorted(directory.iterdir()):
        if file_path.suffix.lower() not in _YAML_SUFFIXES:
            continue
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                out[file_path.stem] = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Skipping config file %s: %r", file_path, exc)
    return out


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _positive_number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _flag(value: Any, default: bool) -> bool:
    """Read a boolean that may arrive as a string from YAML, JSON or the environment."""
    if value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if not text:
            return default
        if text in _TRUE_WORDS:
            return True
        if text in _FALSE_WORDS:
            return False
        raise ConfigurationError(f"expected a boolean, got {value!r}")
    return bool(value)
