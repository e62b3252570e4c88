from __future__ import annotations

import csv
import json
from typing import Any, Dict, Iterable, List
from pathlib import Path

from ..adapters.base import ProductRecord
from ..exceptions import ExportError


class CSVExporter:
    """
    Writes one row per record. Columns are merged from all rows in first-seen
    order, with nested product_info flattened into ``product_info.<key>`` columns.
    """

    def export(self, items: Iterable[ProductRecord], path: str) -> str:
        rows = [flatten_for_csv(item.to_dict()) for item in items]
        headers: List[str] = []
        for row in rows:
            for key in row:
                if key not in headers:
                    headers.append(key)

        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="") as f:
                w = csv.DictWriter(f, fieldnames=headers, restval="")
                w.writeheader()
                w.writerows(rows)
        except OSError as exc:
            raise ExportError(f"Failed to save CSV file {path}: {exc}") from exc
        return path


def flatten_for_csv(obj: Dict[str, Any], parent_key: str = "") -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in obj.items():
        name = f"{parent_key}.{key}" if parent_key else str(key)
        if isinstance(value, dict):
            out.update(flatten_for_csv(value, name))
        elif isinstance(value, (list, tuple)):
            # Arrays stay in a single cell as compact JSON.
            out[name] = json.dumps(list(value), separators=(",", ":"))
        else:
            out[name] = value
    return out
