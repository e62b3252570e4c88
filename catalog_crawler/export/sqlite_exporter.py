from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from typing import Iterable
from pathlib import Path

from ..adapters.base import ProductRecord
from ..exceptions import ExportError

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT,
    description TEXT,
    category TEXT,
    price REAL,
    availability BOOLEAN,
    image_path TEXT,
    product_info TEXT,
    url TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
)
"""

_INSERT = """
INSERT INTO items (title, description, category, price, availability, image_path, product_info, url)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""


class SQLiteExporter:
    """Appends records to an ``items`` table; product_info is stored as JSON text."""

    def export(self, items: Iterable[ProductRecord], path: str) -> str:
        rows = [
            (
                item.title,
                item.description,
                item.category,
                item.price,
                item.availability,
                item.image_path,
                json.dumps(item.product_info, ensure_ascii=False),
                item.url,
            )
            for item in items
        ]
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with closing(sqlite3.connect(path)) as conn:
                with conn:
                    conn.execute(_CREATE_TABLE)
                    conn.executemany(_INSERT, rows)
        except (OSError, sqlite3.Error) as exc:
            raise ExportError(f"Failed to save items to SQLite database {path}: {exc}") from exc
        return path
