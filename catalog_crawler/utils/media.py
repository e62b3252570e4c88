"""Content-addressed storage for product images."""

from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse

from ..exceptions import FetchError
from .http import Fetcher, log_fetch_failure
from .parsing import sanitize_segment

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"


class ImageCache:
    """
    Saves images under ``media_root/<category>/<name>-<sha1(url)><ext>``.

    The file name depends only on the image URL, so an existing file means the
    image was already fetched and the download is skipped.
    """

    def __init__(self, media_root: str | os.PathLike[str], root_dir: Optional[str | os.PathLike[str]] = None) -> None:
        self.media_root = Path(media_root).expanduser().resolve()
        self.root_dir = Path(root_dir).expanduser().resolve() if root_dir else self.media_root.parent
        self.media_root.mkdir(parents=True, exist_ok=True)

    def filename_for(self, image_url: str) -> str:
        path = PurePosixPath(unquote(urlparse(image_url).path))
        extension = path.suffix or DEFAULT_EXTENSION
        digest = hashlib.sha1(image_url.encode("utf-8")).hexdigest()
        return f"{sanitize_segment(path.stem)}-{digest}{extension}"

    def path_for(self, image_url: str, category: Optional[str]) -> Path:
        return self.media_root / sanitize_segment(category) / self.filename_for(image_url)

    def relative_path(self, path: Path) -> str:
        try:
            return Path(os.path.relpath(path, self.root_dir)).as_posix()
        except ValueError:
            return str(path)

    def save(self, image_url: Optional[str], category: Optional[str], client: Fetcher) -> str:
        """
        Store the image and return its path relative to ``root_dir``.
        Returns an empty string when the image cannot be fetched or written.
        """
        if not image_url or not image_url.strip():
            return ""
        try:
            path = self.path_for(image_url, category)
        except ValueError as exc:
            logger.error("Failed to build image path for %s: %r", image_url, exc)
            return ""

        if path.exists():
            logger.debug("Image cache hit: %s", path)
            return self.relative_path(path)

        try:
            data = client.download(image_url)
        except FetchError as exc:
            log_fetch_failure(logger, exc, f"Failed to download product image {image_url}")
            return ""

        # Only complete files may appear at the cache path.
        partial = path.with_name(f".{path.name}.{uuid.uuid4().hex}.part")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            partial.write_bytes(data)
            os.replace(partial, path)
        except OSError as exc:
            logger.error("Failed to write image %s: %s", path, exc)
            with contextlib.suppress(OSError):
                partial.unlink()
            return ""

        logger.info("Saved image to %s", path)
        return self.relative_path(path)
