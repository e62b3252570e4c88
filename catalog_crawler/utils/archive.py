from __future__ import annotations

import logging
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

ARCHIVE_PREFIX = "web_crawler_results_"


def archive_directory(output_dir: str, now: Optional[datetime] = None) -> Optional[str]:
    """
    Zip every file under ``output_dir`` into a timestamped archive inside it.
    Returns the archive path, or None when there is nothing to archive.
    """
    root = Path(output_dir)
    if not root.is_dir():
        return None

    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    archive_path = root / f"{ARCHIVE_PREFIX}{stamp}.zip"
    # Archives from earlier runs are not packed again.
    files = [
        p for p in sorted(root.rglob("*"))
        if p.is_file() and not (p.parent == root and p.name.startswith(ARCHIVE_PREFIX) and p.suffix == ".zip")
    ]
    if not files:
        return None

    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for file_path in files:
            zf.write(file_path, file_path.relative_to(root).as_posix())

    logger.info("Files archived to %s", archive_path)
    return str(archive_path)
