from __future__ import annotations

from typing import Dict, Iterable, Protocol, Tuple

from ..adapters.base import ProductRecord

# Short name -> (dotted class path, default target under the output directory).
EXPORTERS: Dict[str, Tuple[str, str]] = {
    "json": ("catalog_crawler.export.json_exporter:JSONExporter", "items.json"),
    "csv": ("catalog_crawler.export.csv_exporter:CSVExporter", "items.csv"),
    "yaml": ("catalog_crawler.export.yaml_exporter:YAMLExporter", "yaml"),
    "text": ("catalog_crawler.export.text_exporter:TextExporter", "items.txt"),
    "sqlite": ("catalog_crawler.export.sqlite_exporter:SQLiteExporter", "items.sqlite3"),
}


class Exporter(Protocol):
    def export(self, items: Iterable[ProductRecord], path: str) -> str:
        ...


def resolve_exporter(name: str) -> Tuple[str, str]:
    """
    Map a short exporter name to its dotted path and default target.
    Dotted paths pass through with a target named after the class.
    """
    if name in EXPORTERS:
        return EXPORTERS[name]
    target = name.replace(":", ".").rsplit(".", 1)[-1].lower()
    return name, target
