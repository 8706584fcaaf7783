"""Tests for HTTP endpoints."""

import gzip
import json

import pytest

from shortener.lib.keygen import KeyGenerator

COOKIE = "shortener-session"


def key_of(short_url: str) -> str:
    return short_url.rsplit("/", 1)[-1]


@pytest.mark.asyncio
class TestPlainEndpoints:
    """POST /, GET /{key} and GET /ping."""

    async def test_shorten_plain(self, client, sample_urls):
        response = await client.post("/", content=sample_urls[0])

        assert response.status_code == 201
        assert response.headers["content-type"].startswith("text/plain")
        short_url = response.text
        assert short_url.startswith("http://testserver/")
        assert KeyGenerator(length=9).is_valid_format(key_of(short_url))
        assert COOKIE in response.cookies

    async def test_shorten_plain_conflict(self, client, sample_urls):
        first = await client.post("/", content=sample_urls[0])
        second = await client.post("/", content=sample_urls[0])

        assert second.status_code == 409
        assert second.text == first.text

    async def test_shorten_plain_invalid(self, client):
        response = await client.post("/", content="not-a-url")
        assert response.status_code == 400

        response = await client.post("/", content="")
        assert response.status_code == 400

    async def test_redirect(self, client, sample_urls):
        created = await client.post("/", content=sample_urls[0])

        response = await client.get(f"/{key_of(created.text)}")

        assert response.status_code == 307
        assert response.headers["location"] == sample_urls[0]

    async def test_redirect_unknown_key(self, client):
        response = await client.get("/unknown00")
        assert response.status_code == 400

    async def test_ping(self, client):
        response = await client.get("/ping")
        assert response.status_code == 200

    async def test_gzip_request_body(self, client, sample_urls):
        response = await client.post(
            "/",
            content=gzip.compress(sample_urls[1].encode()),
            headers={"Content-Encoding": "gzip"},
        )

        assert response.status_code == 201
        redirect = await client.get(f"/{key_of(response.text)}")
        assert redirect.headers["location"] == sample_urls[1]

    async def test_malformed_gzip_body(self, client):
        response = await client.post(
            "/",
            content=b"definitely not gzip",
            headers={"Content-Encoding": "gzip"},
        )
        assert response.status_code == 400

    async def test_gzip_response(self, client, sample_urls):
        response = await client.post(
            "/",
            content=sample_urls[0],
            headers={"Accept-Encoding": "gzip"},
        )

        assert response.status_code == 201
        assert response.headers["content-encoding"] == "gzip"
        # httpx decodes transparently
        assert response.text.startswith("http://testserver/")


@pytest.mark.asyncio
class TestJSONEndpoints:
    """The /api endpoints."""

    async def test_shorten(self, client, sample_urls):
        response = await client.post("/api/shorten", json={"url": sample_urls[0]})

        assert response.status_code == 201
        assert response.headers["content-type"] == "application/json"
        result = response.json()["result"]
        assert result.startswith("http://testserver/")

    async def test_shorten_conflict(self, client, sample_urls):
        first = await client.post("/api/shorten", json={"url": sample_urls[0]})
        second = await client.post("/api/shorten", json={"url": sample_urls[0]})

        assert second.status_code == 409
        assert second.json() == first.json()

    async def test_shorten_malformed_json(self, client):
        response = await client.post("/api/shorten", content=b"{\"url\": ")
        assert response.status_code == 400

        response = await client.post("/api/shorten", json={"link": "https://example.com"})
        assert response.status_code == 400

    async def test_shorten_invalid_url(self, client):
        response = await client.post("/api/shorten", json={"url": "ftp://example.com"})
        assert response.status_code == 400

    async def test_batch(self, client):
        payload = [
            {"correlation_id": "a", "original_url": "https://example.com/a"},
            {"correlation_id": "b", "original_url": "https://example.com/b"},
        ]

        response = await client.post("/api/shorten/batch", json=payload)

        assert response.status_code == 201
        items = response.json()
        assert [item["correlation_id"] for item in items] == ["a", "b"]
        for sent, item in zip(payload, items):
            redirect = await client.get(f"/{key_of(item['short_url'])}")
            assert redirect.headers["location"] == sent["original_url"]

    async def test_batch_with_invalid_url_creates_nothing(self, client, store):
        payload = [
            {"correlation_id": "a", "original_url": "https://example.com/a"},
            {"correlation_id": "b", "original_url": "nope"},
        ]

        response = await client.post("/api/shorten/batch", json=payload)

        assert response.status_code == 400
        assert len(store) == 0

    async def test_user_urls_empty(self, client):
        response = await client.get("/api/user/urls")

        assert response.status_code == 204
        assert response.content == b""

    async def test_user_urls(self, client, sample_urls):
        for url in sample_urls:
            await client.post("/api/shorten", json={"url": url})

        response = await client.get("/api/user/urls")

        assert response.status_code == 200
        assert sorted(item["original_url"] for item in response.json()) == sorted(sample_urls)

    async def test_sessions_are_isolated(self, client, app, sample_urls):
        from httpx import AsyncClient, ASGITransport

        await client.post("/api/shorten", json={"url": sample_urls[0]})

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as other:
            response = await other.get("/api/user/urls")

        assert response.status_code == 204

    async def test_delete_then_gone(self, client, sample_urls):
        created = await client.post("/api/shorten", json={"url": sample_urls[0]})
        key = key_of(created.json()["result"])

        response = await client.request("DELETE", "/api/user/urls", content=json.dumps([key]))
        assert response.status_code == 202

        redirect = await client.get(f"/{key}")
        assert redirect.status_code == 410

        listing = await client.get("/api/user/urls")
        assert listing.status_code == 204

    async def test_delete_foreign_keys_is_ignored(self, client, app, sample_urls):
        from httpx import AsyncClient, ASGITransport

        created = await client.post("/api/shorten", json={"url": sample_urls[0]})
        key = key_of(created.json()["result"])

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as other:
            response = await other.request("DELETE", "/api/user/urls", content=json.dumps([key]))

        assert response.status_code == 202
        redirect = await client.get(f"/{key}")
        assert redirect.status_code == 307

    async def test_delete_malformed_body(self, client):
        response = await client.request("DELETE", "/api/user/urls", content=b"{\"keys\": 1}")
        assert response.status_code == 400

    async def test_error_response_sets_session_cookie(self, client):
        response = await client.post("/api/shorten", content=b"not json")

        assert response.status_code == 400
        assert COOKIE in response.cookies
