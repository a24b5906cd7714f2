# tests/test_dispatch.py
"""Tests for MedoroDataplaneClient.send and the object helpers.

All exchanges run against httpx.MockTransport handlers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from medoro import (
    Command,
    DeleteObjectCommand,
    GetObjectCommand,
    PutObjectCommand,
    ValidationPolicy,
    decode_policy,
    verify_signed_url,
)
from medoro.client import SIGNATURE_INPUT_PARAM, SIGNATURE_PARAM
from medoro.policy import POLICY_PARAM
from tests.helpers import (
    FIXED_NOW,
    expect_failure,
    expect_success,
    make_client,
    success_body,
)


def _error_envelope(code: str, message: str, error_type: str = "api_error") -> dict[str, object]:
    return {"success": False, "error": {"code": code, "type": error_type, "message": message}}


@pytest.mark.asyncio
async def test_store_success_returns_envelope_data(
    private_key: Ed25519PrivateKey, policy: ValidationPolicy
) -> None:
    data = {"message": "Object stored", "key": "test-key"}
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=success_body(data))

    async with make_client(private_key, handler) as client:
        result = await client.send(
            PutObjectCommand(key="test-key", policy=policy, content="Hello Medoro!")
        )

    assert expect_success(result) == data
    [request] = seen
    assert request.method == "PUT"
    assert request.content == b"Hello Medoro!"
    assert {POLICY_PARAM, SIGNATURE_INPUT_PARAM, SIGNATURE_PARAM} <= set(request.url.params.keys())


@pytest.mark.asyncio
async def test_requests_carry_verifiable_signatures(
    private_key: Ed25519PrivateKey, policy: ValidationPolicy
) -> None:
    verified: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        params = expect_success(
            verify_signed_url(request.url, request.method, private_key.public_key(), now=FIXED_NOW)
        )
        verified.append(f"{request.method} {params['keyid']}")
        return httpx.Response(200, json=success_body(None))

    commands: list[Command] = [
        PutObjectCommand(key="k", policy=policy, content=b"x"),
        GetObjectCommand(key="k"),
        DeleteObjectCommand(key="k"),
    ]
    async with make_client(private_key, handler) as client:
        for command in commands:
            result = await client.send(command)
            assert result.is_success()

    assert verified == ["PUT test-key-id", "GET test-key-id", "DELETE test-key-id"]


@pytest.mark.asyncio
async def test_fetch_success_returns_unread_response(private_key: Ed25519PrivateKey) -> None:
    payload = b"\x00\x01binary\xff"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "image/png"}, content=payload)

    async with make_client(private_key, handler) as client:
        response = expect_success(await client.send(GetObjectCommand(key="img.png")))
        body = await response.aread()
        await response.aclose()

    assert isinstance(response, httpx.Response)
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert body == payload


@pytest.mark.asyncio
async def test_fetch_success_streams_body(private_key: Ed25519PrivateKey) -> None:
    chunks = [b"a" * 10, b"b" * 10]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"".join(chunks))

    async with make_client(private_key, handler) as client:
        response = expect_success(await client.get_object("big.bin"))
        received = b"".join([chunk async for chunk in response.aiter_bytes()])
        await response.aclose()

    assert received == b"".join(chunks)


@pytest.mark.asyncio
async def test_fetch_not_found_surfaces_envelope_error(private_key: Ed25519PrivateKey) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json=_error_envelope("NOT_FOUND", "Not Found"))

    async with make_client(private_key, handler) as client:
        error = expect_failure(await client.send(GetObjectCommand(key="missing")))

    assert error.kind == "api_error"
    assert error.code == "NOT_FOUND"
    assert error.message == "Not Found"


@pytest.mark.asyncio
async def test_fetch_failure_with_success_envelope_uses_status(
    private_key: Ed25519PrivateKey,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json=success_body({"retry": True}))

    async with make_client(private_key, handler) as client:
        error = expect_failure(await client.send(GetObjectCommand(key="k")))

    assert error.kind == "api_error"
    assert error.message == "API returned a non-ok response"
    assert error.code == "503"
    assert error.context == "Service Unavailable"


@pytest.mark.asyncio
async def test_fetch_failure_with_html_is_a_parse_error(private_key: Ed25519PrivateKey) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, html="<html>Bad Gateway</html>")

    async with make_client(private_key, handler) as client:
        error = expect_failure(await client.send(GetObjectCommand(key="k")))

    assert error.kind == "json_parse_error"
    assert isinstance(error.context, dict)
    assert error.context["content"] == "<html>Bad Gateway</html>"
    assert error.context["status"] == 502


@pytest.mark.asyncio
async def test_store_rejected_by_service(
    private_key: Ed25519PrivateKey, policy: ValidationPolicy
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json=_error_envelope("UNAUTHORIZED", "Invalid signature"))

    async with make_client(private_key, handler) as client:
        error = expect_failure(await client.put_object("k", "text", policy))

    assert error.kind == "api_error"
    assert error.code == "UNAUTHORIZED"
    assert error.message == "Invalid signature"
    assert error.context == "Unauthorized"


@pytest.mark.asyncio
async def test_store_with_non_json_body_is_a_parse_error(
    private_key: Ed25519PrivateKey, policy: ValidationPolicy
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="OK")

    async with make_client(private_key, handler) as client:
        error = expect_failure(await client.send(PutObjectCommand(key="k", policy=policy)))

    assert error.kind == "json_parse_error"


@pytest.mark.asyncio
async def test_remove_success_and_envelope_mismatch(private_key: Ed25519PrivateKey) -> None:
    responses = iter(
        [
            httpx.Response(200, json=success_body({"deleted": "k"})),
            httpx.Response(200, json={"ok": True}),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        return next(responses)

    async with make_client(private_key, handler) as client:
        first = await client.delete_object("k")
        second = await client.send(DeleteObjectCommand(key="k"))

    assert expect_success(first) == {"deleted": "k"}
    assert expect_failure(second).kind == "validation_error"


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", ["put", "get", "delete"])
async def test_transport_failure_is_a_network_error(
    private_key: Ed25519PrivateKey, policy: ValidationPolicy, kind: str
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    command: Command = {
        "put": PutObjectCommand(key="k", policy=policy, content=b"x"),
        "get": GetObjectCommand(key="k"),
        "delete": DeleteObjectCommand(key="k"),
    }[kind]

    async with make_client(private_key, handler) as client:
        error = expect_failure(await client.send(command))

    assert error.kind == "network_error"
    assert error.message == f"Network error during {command.method}: Connection refused"


@pytest.mark.asyncio
async def test_timeout_is_a_network_error(private_key: Ed25519PrivateKey) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with make_client(private_key, handler) as client:
        error = expect_failure(await client.get_object("k"))

    assert error.kind == "network_error"


@pytest.mark.asyncio
async def test_signing_failure_sends_nothing(policy: ValidationPolicy) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=success_body(None))

    async with make_client(None, handler) as client:
        error = expect_failure(await client.send(PutObjectCommand(key="k", policy=policy)))

    assert error.kind == "signature_error"
    assert calls == []


@pytest.mark.asyncio
async def test_put_object_sets_content_type(
    private_key: Ed25519PrivateKey, policy: ValidationPolicy
) -> None:
    content_types: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        content_types.append(request.headers["content-type"])
        return httpx.Response(200, json=success_body(None))

    async with make_client(private_key, handler) as client:
        await client.put_object("a.txt", "text", policy)
        await client.put_object("a.bin", b"\x00", policy)
        await client.put_object("a.json", b"{}", policy, content_type="application/json")

    assert content_types == ["text/plain", "application/octet-stream", "application/json"]


@pytest.mark.asyncio
async def test_put_object_streams_async_content(
    private_key: Ed25519PrivateKey, policy: ValidationPolicy
) -> None:
    received: list[bytes] = []
    policies: list[ValidationPolicy] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request.content)
        policies.append(expect_success(decode_policy(request.url.params[POLICY_PARAM])))
        return httpx.Response(200, json=success_body(None))

    async def chunks() -> AsyncIterator[bytes]:
        yield b"part-1,"
        yield b"part-2"

    async with make_client(private_key, handler) as client:
        expect_success(await client.put_object("stream.bin", chunks(), policy))

    assert received == [b"part-1,part-2"]
    assert policies == [policy]


@pytest.mark.asyncio
async def test_command_headers_are_sent(private_key: Ed25519PrivateKey) -> None:
    traces: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        traces.append(request.headers.get("x-trace"))
        return httpx.Response(200, content=b"")

    async with make_client(private_key, handler) as client:
        response = expect_success(
            await client.send(GetObjectCommand(key="k", headers={"X-Trace": "abc"}))
        )
        await response.aclose()

    assert traces == ["abc"]


@pytest.mark.asyncio
async def test_send_outside_context_raises(private_key: Ed25519PrivateKey) -> None:
    client = make_client(private_key, lambda request: httpx.Response(200))

    with pytest.raises(RuntimeError, match="not initialized"):
        await client.send(GetObjectCommand(key="k"))


@pytest.mark.asyncio
async def test_dispatch_is_logged(
    private_key: Ed25519PrivateKey, caplog: pytest.LogCaptureFixture
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(204, json=success_body(None))

    with caplog.at_level(logging.DEBUG, logger="medoro.client"):
        async with make_client(private_key, handler) as client:
            await client.delete_object("logged")

    assert "DELETE /logged -> HTTP 204" in caplog.text


@pytest.mark.asyncio
async def test_fetch_follows_redirects(private_key: Ed25519PrivateKey) -> None:
    cdn_url = "https://cdn.example.com/blob"
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        if request.url.host == "cdn.example.com":
            return httpx.Response(200, content=b"payload")
        return httpx.Response(302, headers={"location": cdn_url})

    async with make_client(private_key, handler) as client:
        response = expect_success(await client.get_object("k"))
        body = await response.aread()
        await response.aclose()

    assert response.status_code == 200
    assert str(response.url) == cdn_url
    assert body == b"payload"
    assert seen == ["test-bucket.content-serve.com", "cdn.example.com"]


@pytest.mark.asyncio
async def test_remove_follows_method_preserving_redirect(private_key: Ed25519PrivateKey) -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        if request.url.path == "/moved":
            return httpx.Response(200, json=success_body({"deleted": "moved"}))
        return httpx.Response(307, headers={"location": "/moved"})

    async with make_client(private_key, handler) as client:
        data = expect_success(await client.delete_object("k"))

    assert data == {"deleted": "moved"}
    assert methods == ["DELETE", "DELETE"]
