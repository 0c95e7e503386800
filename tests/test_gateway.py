"""End-to-end tests for the gateway request pipeline."""

from datetime import datetime, timezone

from s3proxy.config import HTTPConfig, ServerConfig
from s3proxy.storage.backend import ObjectMetadata
from tests.conftest import BUCKET, make_client, make_config


class TestServeObject:
    async def test_directory_index(self, client, store):
        body = b"<html>" + b"x" * 29 + b"</html>"
        assert len(body) == 42
        store.put(
            BUCKET,
            "www/a/b/index.html",
            body,
            ObjectMetadata(content_type="text/html", content_length=42),
        )

        resp = await client.get("/a/b/")

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "text/html"
        assert resp.headers["content-length"] == "42"
        assert resp.content == body
        assert store.fetched == ["www/a/b/index.html"]

    async def test_metadata_headers_passed_through(self, client, store):
        store.put(
            BUCKET,
            "www/report.pdf",
            b"%PDF-1.4",
            ObjectMetadata(
                content_type="application/pdf",
                content_disposition='inline; filename="report.pdf"',
                cache_control="max-age=300",
                last_modified=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            ),
        )

        resp = await client.get("/report.pdf")

        assert resp.status_code == 200
        assert resp.headers["content-disposition"] == 'inline; filename="report.pdf"'
        assert resp.headers["cache-control"] == "max-age=300"
        assert resp.headers["last-modified"] == "Tue, 02 Jan 2024 03:04:05 GMT"
        assert "expires" not in resp.headers

    async def test_zero_length_has_no_content_length(self, client, store):
        store.put(BUCKET, "www/empty.txt", b"", ObjectMetadata(content_length=0))

        resp = await client.get("/empty.txt")

        assert resp.status_code == 200
        assert "content-length" not in resp.headers
        assert resp.content == b""

    async def test_large_body_streamed_verbatim(self, client, store):
        data = bytes(range(256)) * 100
        store.put(BUCKET, "www/blob.bin", data)

        resp = await client.get("/blob.bin")

        assert resp.status_code == 200
        assert resp.headers["content-length"] == str(len(data))
        assert resp.content == data

    async def test_method_not_restricted(self, client, store):
        store.put(BUCKET, "www/a.txt", b"hello")
        resp = await client.post("/a.txt")
        assert resp.status_code == 200
        assert resp.content == b"hello"

    async def test_query_string_not_part_of_key(self, client, store):
        store.put(BUCKET, "www/a.txt", b"hello")
        resp = await client.get("/a.txt?v=3")
        assert resp.status_code == 200
        assert store.fetched == ["www/a.txt"]

    async def test_encoded_question_mark_kept_in_key(self, client, store):
        store.put(BUCKET, "www/a?b.txt", b"hello")
        resp = await client.get("/a%3Fb.txt")
        assert resp.status_code == 200
        assert resp.content == b"hello"
        assert store.fetched == ["www/a?b.txt"]

    async def test_encoded_hash_kept_in_key(self, client, store):
        store.put(BUCKET, "www/file#1.html", b"<p>1</p>")
        resp = await client.get("/file%231.html")
        assert resp.status_code == 200
        assert store.fetched == ["www/file#1.html"]


class TestSymlinkRequests:
    async def test_served_through_symlink(self, client, store):
        store.put(BUCKET, "www/latest/symlink.json", b'{"URL": "/v2"}')
        store.put(BUCKET, "www/v2/app.js", b"console.log(2)")

        resp = await client.get("/latest/symlink.json/app.js")

        assert resp.status_code == 200
        assert resp.content == b"console.log(2)"
        assert store.fetched == ["www/latest/symlink.json", "www/v2/app.js"]

    async def test_malformed_symlink_is_500(self, client, store):
        store.put(BUCKET, "www/latest/symlink.json", b"not json")

        resp = await client.get("/latest/symlink.json/app.js")

        assert resp.status_code == 500
        assert "invalid symlink descriptor www/latest/symlink.json" in resp.text
        assert store.fetched == ["www/latest/symlink.json"]

    async def test_missing_symlink_is_500(self, client, store):
        resp = await client.get("/latest/symlink.json/app.js")
        assert resp.status_code == 500
        assert resp.text == "NoSuchKey: The specified key does not exist."


class TestFetchErrors:
    async def test_missing_object_is_500_with_error_text(self, client, store):
        resp = await client.get("/missing.html")

        assert resp.status_code == 500
        assert resp.text == "NoSuchKey: The specified key does not exist."
        assert resp.headers["content-type"].startswith("text/plain")
        assert store.fetched == ["www/missing.html"]

    async def test_missing_index_is_500(self, client):
        resp = await client.get("/docs/")
        assert resp.status_code == 500


class TestHeaderOverrides:
    async def test_configured_cache_control_and_expires(self, store):
        config = make_config(
            http=HTTPConfig(cache_control="max-age=86400", expires="Thu, 01 Dec 1994 16:00:00 GMT")
        )
        store.put(
            BUCKET,
            "www/a.css",
            b"body{}",
            ObjectMetadata(content_type="text/css", cache_control="no-cache"),
        )

        async with make_client(config, store) as client:
            resp = await client.get("/a.css")

        assert resp.headers["cache-control"] == "max-age=86400"
        assert resp.headers["expires"] == "Thu, 01 Dec 1994 16:00:00 GMT"
        assert resp.headers["content-type"] == "text/css"


class TestVersionEndpoint:
    async def test_version_when_configured(self, store):
        config = make_config(server=ServerConfig(version="1.4.0", build_date="2024-05-01"))

        async with make_client(config, store) as client:
            resp = await client.get("/--version")

        assert resp.status_code == 200
        assert resp.text == "version: 1.4.0 (built at 2024-05-01)"
        assert store.fetched == []

    async def test_empty_when_not_configured(self, client, store):
        resp = await client.get("/--version")
        assert resp.status_code == 200
        assert resp.content == b""
        assert store.fetched == []

    async def test_needs_both_version_and_date(self, store):
        config = make_config(server=ServerConfig(version="1.4.0"))
        async with make_client(config, store) as client:
            resp = await client.get("/--version")
        assert resp.content == b""
