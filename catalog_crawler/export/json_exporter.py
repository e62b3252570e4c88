from __future__ import annotations

import json
from typing import Iterable
from pathlib import Path

from ..adapters.base import ProductRecord
from ..exceptions import ExportError


class JSONExporter:
    def export(self, items: Iterable[ProductRecord], path: str) -> str:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump([item.to_dict() for item in items], f, indent=2, ensure_ascii=False)
        except OSError as exc:
            raise ExportError(f"Failed to save JSON file {path}: {exc}") from exc
        return path
