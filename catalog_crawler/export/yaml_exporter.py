from __future__ import annotations

from typing import Iterable
from pathlib import Path

import yaml

from ..adapters.base import ProductRecord
from ..exceptions import ExportError


class YAMLExporter:
    """Writes each record to its own ``item_<n>.yml`` file inside ``path``."""

    def export(self, items: Iterable[ProductRecord], path: str) -> str:
        directory = Path(path)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            for index, item in enumerate(items, start=1):
                with open(directory / f"item_{index}.yml", "w", encoding="utf-8") as f:
                    yaml.safe_dump(item.to_dict(), f, allow_unicode=True, sort_keys=False)
        except OSError as exc:
            raise ExportError(f"Failed to save YAML files in {path}: {exc}") from exc
        return path
