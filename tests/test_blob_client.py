"""Unit tests for DiscordBlobClient."""

import json

import httpx
import pytest

from vault.blob_client import DiscordBlobClient, _attachment_filename
from vault.exceptions import BackendRejected, BackendUnavailable, ReferenceNotFound

API_BASE = "https://discord.test/api/v10"
CDN_URL = "https://cdn.discord.test/attachments/42/777/chunk.bin?ex=abc"


def make_client(handler) -> DiscordBlobClient:
    return DiscordBlobClient(
        token="bot-token-value",
        channel_id="42",
        api_base=API_BASE,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def recorded():
    return []


@pytest.fixture
def client(recorded):
    store = {}

    def handler(request: httpx.Request) -> httpx.Response:
        recorded.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/api/v10/channels/42/messages":
            store["777"] = request.content
            return httpx.Response(200, json={"id": "777", "attachments": [{"id": "1", "url": CDN_URL}]})

        if request.method == "GET" and path == "/api/v10/channels/42/messages/777":
            return httpx.Response(200, json={"id": "777", "attachments": [{"url": CDN_URL}]})

        if request.method == "GET" and request.url.host == "cdn.discord.test":
            return httpx.Response(200, content=b"encrypted-bytes")

        if request.method == "DELETE" and path == "/api/v10/channels/42/messages/777":
            return httpx.Response(204)

        return httpx.Response(404, json={"message": "Unknown Message", "code": 10008})

    return make_client(handler)


@pytest.mark.asyncio
async def test_upload_posts_attachment_and_returns_message_id(client, recorded):
    reference = await client.upload(b"encrypted-bytes", "Chunk 1 of 3 for report.pdf")

    assert reference == "777"
    request = recorded[0]
    assert request.headers["Authorization"] == "Bot bot-token-value"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b"encrypted-bytes" in request.content
    assert b"payload_json" in request.content
    assert b"Chunk 1 of 3 for report.pdf" in request.content


@pytest.mark.asyncio
async def test_resolve_fetches_attachment_without_bot_token(client, recorded):
    data = await client.resolve("777")

    assert data == b"encrypted-bytes"
    message_request, cdn_request = recorded
    assert message_request.headers["Authorization"] == "Bot bot-token-value"
    assert "Authorization" not in cdn_request.headers


@pytest.mark.asyncio
async def test_resolve_missing_message(client):
    with pytest.raises(ReferenceNotFound) as exc_info:
        await client.resolve("555")

    assert exc_info.value.reference == "555"


@pytest.mark.asyncio
async def test_resolve_message_without_attachment():
    def handler(request):
        return httpx.Response(200, json={"id": "777", "attachments": []})

    with pytest.raises(ReferenceNotFound):
        await make_client(handler).resolve("777")


@pytest.mark.asyncio
async def test_delete(client, recorded):
    await client.delete("777")

    assert recorded[0].method == "DELETE"


@pytest.mark.asyncio
async def test_delete_missing_message(client):
    with pytest.raises(ReferenceNotFound):
        await client.delete("555")


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [429, 500, 502, 503, 401])
async def test_unavailable_statuses(status_code):
    def handler(request):
        return httpx.Response(status_code, json={"message": "nope"})

    with pytest.raises(BackendUnavailable):
        await make_client(handler).upload(b"data", "Chunk 1 of 1 for a.txt")


@pytest.mark.asyncio
async def test_short_rate_limit_is_waited_out():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, json={"message": "You are being rate limited.", "retry_after": 0.01})
        return httpx.Response(200, json={"id": "888", "attachments": []})

    reference = await make_client(handler).upload(b"data", "Chunk 1 of 1 for a.txt")

    assert reference == "888"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_rate_limit_header_is_honored():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(429, headers={"Retry-After": "0"})
        return httpx.Response(204)

    await make_client(handler).delete("777")

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_long_rate_limit_is_unavailable():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, json={"message": "You are being rate limited.", "retry_after": 120})

    with pytest.raises(BackendUnavailable):
        await make_client(handler).upload(b"data", "Chunk 1 of 1 for a.txt")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_repeated_rate_limit_is_unavailable():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429, json={"retry_after": 0.01})

    with pytest.raises(BackendUnavailable):
        await make_client(handler).resolve("777")
    assert len(calls) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 403, 413])
async def test_rejected_statuses(status_code):
    def handler(request):
        return httpx.Response(status_code, json={"message": "Request entity too large"})

    with pytest.raises(BackendRejected):
        await make_client(handler).upload(b"data", "Chunk 1 of 1 for a.txt")


@pytest.mark.asyncio
async def test_network_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendUnavailable):
        await make_client(handler).resolve("777")


@pytest.mark.asyncio
async def test_timeout_is_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(BackendUnavailable):
        await make_client(handler).delete("777")


@pytest.mark.asyncio
async def test_close(client):
    await client.close()

    assert client._api.is_closed
    assert client._cdn.is_closed


def test_attachment_filename_is_sanitized():
    name = _attachment_filename("Chunk 2 of 3 for my report (final).pdf")

    assert name.endswith(".bin")
    assert " " not in name
    assert "(" not in name
    assert json.dumps(name) == f'"{name}"'
