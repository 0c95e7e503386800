"""Tests for request path to store key resolution."""

import pytest

from s3proxy.errors import ResolutionError, StoreError
from s3proxy.resolver import Symlink, parse_symlink, resolve_key
from tests.conftest import BUCKET


async def _resolve(store, path, prefix="www"):
    return await resolve_key(path, store, BUCKET, prefix)


class TestPlainPaths:
    """Paths without the symlink marker."""

    async def test_key_is_prefix_plus_path(self, store):
        assert await _resolve(store, "/css/site.css") == "www/css/site.css"
        assert store.fetched == []

    async def test_empty_prefix(self, store):
        assert await _resolve(store, "/a/b.txt", prefix="") == "/a/b.txt"

    async def test_trailing_slash_gets_index(self, store):
        assert await _resolve(store, "/a/b/") == "www/a/b/index.html"

    async def test_root_gets_index(self, store):
        assert await _resolve(store, "/") == "www/index.html"

    async def test_no_slash_no_index(self, store):
        assert await _resolve(store, "/a/b") == "www/a/b"


class TestSymlinks:
    """Paths containing the symlink marker."""

    async def test_descriptor_key_and_rewrite(self, store):
        store.put(BUCKET, "www/docs/symlink.json", b'{"URL": "/releases/v2"}')

        key = await _resolve(store, "/docs/symlink.json/guide/intro.html")

        assert store.fetched == ["www/docs/symlink.json"]
        assert key == "www/releases/v2/guide/intro.html"

    async def test_rewritten_directory_gets_index(self, store):
        store.put(BUCKET, "www/docs/symlink.json", b'{"URL": "/releases/v2"}')
        key = await _resolve(store, "/docs/symlink.json/")
        assert key == "www/releases/v2/index.html"

    async def test_marker_at_end_of_path(self, store):
        store.put(BUCKET, "www/latest/symlink.json", b'{"URL": "/v3/index.html"}')
        assert await _resolve(store, "/latest/symlink.json") == "www/v3/index.html"

    async def test_single_hop_only(self, store):
        """A target containing the marker is not resolved again."""
        store.put(BUCKET, "www/a/symlink.json", b'{"URL": "/b/symlink.json"}')
        store.put(BUCKET, "www/b/symlink.json", b'{"URL": "/c"}')

        key = await _resolve(store, "/a/symlink.json/page.html")

        assert key == "www/b/symlink.json/page.html"
        assert store.fetched == ["www/a/symlink.json"]

    async def test_marker_not_on_segment_boundary(self, store):
        """The marker is matched as a plain substring."""
        store.put(BUCKET, "www/foosymlink.json", b'{"URL": "/target"}')

        key = await _resolve(store, "/foosymlink.jsonbar")

        assert store.fetched == ["www/foosymlink.json"]
        assert key == "www/targetbar"

    async def test_only_first_marker_is_used(self, store):
        store.put(BUCKET, "www/x/symlink.json", b'{"URL": "/y"}')
        key = await _resolve(store, "/x/symlink.json/z/symlink.json")
        assert key == "www/y/z/symlink.json"

    async def test_extra_fields_ignored(self, store):
        store.put(BUCKET, "www/s/symlink.json", b'{"URL": "/t", "Comment": "moved"}')
        assert await _resolve(store, "/s/symlink.json/f") == "www/t/f"

    async def test_missing_url_field_substitutes_empty(self, store):
        store.put(BUCKET, "www/s/symlink.json", b"{}")
        assert await _resolve(store, "/s/symlink.json/f.txt") == "www/f.txt"

    async def test_missing_descriptor_raises_store_error(self, store):
        with pytest.raises(StoreError) as exc_info:
            await _resolve(store, "/nope/symlink.json/f")
        assert exc_info.value.key == "www/nope/symlink.json"

    async def test_malformed_descriptor_raises(self, store):
        store.put(BUCKET, "www/s/symlink.json", b"{not json")
        with pytest.raises(ResolutionError):
            await _resolve(store, "/s/symlink.json/f")

    async def test_descriptor_must_be_object(self, store):
        store.put(BUCKET, "www/s/symlink.json", b'["/t"]')
        with pytest.raises(ResolutionError):
            await _resolve(store, "/s/symlink.json/f")


class TestParseSymlink:
    def test_parses_url(self):
        assert parse_symlink(b'{"URL": "/x"}') == Symlink(URL="/x")

    def test_url_must_be_string(self):
        with pytest.raises(ResolutionError, match="invalid symlink descriptor"):
            parse_symlink(b'{"URL": 5}', key="k/symlink.json")
