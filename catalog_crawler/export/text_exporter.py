from __future__ import annotations

from typing import Iterable
from pathlib import Path

from ..adapters.base import ProductRecord
from ..exceptions import ExportError


class TextExporter:
    def export(self, items: Iterable[ProductRecord], path: str) -> str:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                for item in items:
                    f.write(f"{item}\n")
        except OSError as exc:
            raise ExportError(f"Failed to save text file {path}: {exc}") from exc
        return path
