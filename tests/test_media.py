"""
Tests for the content-addressed image cache.
"""
import hashlib
from pathlib import Path

import pytest

from catalog_crawler.config import AgentSettings
from catalog_crawler.utils.media import ImageCache

IMAGE_URL = "https://cdn.example/media/cache/Cover Art.PNG"


@pytest.fixture
def cache(tmp_path):
    return ImageCache(tmp_path / "media")


@pytest.fixture
def client(fake_web):
    fake_web.binaries[IMAGE_URL] = b"png-bytes"
    fake_web.binaries["https://cdn.example/images/photo"] = b"jpeg-bytes"
    return fake_web.factory(AgentSettings())


class TestImageCache:
    def test_filename_is_derived_from_url(self, cache):
        digest = hashlib.sha1(IMAGE_URL.encode("utf-8")).hexdigest()
        assert cache.filename_for(IMAGE_URL) == f"cover_art-{digest}.PNG"

    def test_extension_defaults_to_jpg(self, cache):
        assert cache.filename_for("https://cdn.example/images/photo").endswith(".jpg")

    def test_save_writes_under_sanitized_category(self, cache, client, tmp_path):
        rel = cache.save(IMAGE_URL, "Science Fiction", client)
        assert rel.startswith("media/science_fiction/cover_art-")
        assert (tmp_path / rel).read_bytes() == b"png-bytes"

    def test_second_save_is_a_cache_hit(self, cache, client, fake_web):
        first = cache.save(IMAGE_URL, "Poetry", client)
        second = cache.save(IMAGE_URL, "Poetry", client)
        assert first == second
        assert fake_web.downloads[IMAGE_URL] == 1

    def test_same_url_in_other_category_is_stored_separately(self, cache, client, fake_web):
        a = cache.save(IMAGE_URL, "Poetry", client)
        b = cache.save(IMAGE_URL, "Travel", client)
        assert a != b
        assert fake_web.downloads[IMAGE_URL] == 2

    def test_empty_category_uses_item(self, cache, client):
        assert cache.save(IMAGE_URL, "", client).startswith("media/item/")

    def test_download_failure_returns_empty(self, cache, client):
        assert cache.save("https://cdn.example/missing.jpg", "Poetry", client) == ""

    def test_blank_url_returns_empty(self, cache, client, fake_web):
        assert cache.save("", "Poetry", client) == ""
        assert cache.save(None, "Poetry", client) == ""
        assert sum(fake_web.downloads.values()) == 0

    def test_write_failure_returns_empty(self, cache, client, tmp_path):
        # A file where the category directory should go makes mkdir fail.
        (tmp_path / "media" / "poetry").write_text("not a directory")
        assert cache.save(IMAGE_URL, "Poetry", client) == ""

    def test_relative_to_custom_root(self, tmp_path, client):
        cache = ImageCache(tmp_path / "site" / "media", root_dir=tmp_path)
        assert cache.save(IMAGE_URL, "Poetry", client).startswith("site/media/poetry/")

    def test_interrupted_write_leaves_no_cache_entry(self, cache, client, fake_web, monkeypatch, tmp_path):
        original = Path.write_bytes

        def half_then_fail(self, data):
            original(self, data[: len(data) // 2])
            raise OSError("No space left on device")

        monkeypatch.setattr(Path, "write_bytes", half_then_fail)
        assert cache.save(IMAGE_URL, "Poetry", client) == ""
        assert list((tmp_path / "media" / "poetry").iterdir()) == []

        monkeypatch.setattr(Path, "write_bytes", original)
        rel = cache.save(IMAGE_URL, "Poetry", client)
        assert (tmp_path / rel).read_bytes() == b"png-bytes"
        assert fake_web.downloads[IMAGE_URL] == 2
