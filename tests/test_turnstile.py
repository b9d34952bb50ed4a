"""
Lehrershow Song Submissions - Turnstile Verification Tests

All requests go through httpx.MockTransport; nothing leaves the process.
"""

from urllib.parse import parse_qs

import httpx
import pytest

from src.services.turnstile import TurnstileResult, verify_turnstile


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestVerifyTurnstile:
    async def test_success_posts_form(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["content_type"] = request.headers["content-type"]
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "challenge_ts": "2026-10-18T12:00:00Z",
                    "hostname": "lehrershow.example",
                },
            )

        async with _client(handler) as client:
            result = await verify_turnstile(
                "tok", remote_ip="203.0.113.7", secret="s3cret", client=client
            )

        assert result.success is True
        assert result.challenge_ts == "2026-10-18T12:00:00Z"
        assert result.hostname == "lehrershow.example"
        assert result.error_codes == []
        assert seen["method"] == "POST"
        assert seen["content_type"] == "application/x-www-form-urlencoded"
        assert seen["form"] == {
            "secret": ["s3cret"],
            "response": ["tok"],
            "remoteip": ["203.0.113.7"],
        }

    async def test_rejected_token(self):
        body = {"success": False, "error-codes": ["invalid-input-response"]}
        async with _client(lambda r: httpx.Response(200, json=body)) as client:
            result = await verify_turnstile("bad", secret="s", client=client)
        assert result.success is False
        assert result.error_codes == ["invalid-input-response"]

    async def test_truthy_non_boolean_success_is_not_success(self):
        async with _client(lambda r: httpx.Response(200, json={"success": "yes"})) as client:
            result = await verify_turnstile("tok", secret="s", client=client)
        assert result.success is False

    @pytest.mark.parametrize("status", [400, 500, 503])
    async def test_http_error(self, status):
        async with _client(lambda r: httpx.Response(status)) as client:
            result = await verify_turnstile("tok", secret="s", client=client)
        assert result.success is False
        assert result.error == f"Turnstile verify HTTP {status}"

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with _client(handler) as client:
            result = await verify_turnstile("tok", secret="s", client=client)
        assert result.success is False
        assert result.error

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with _client(handler) as client:
            result = await verify_turnstile("tok", secret="s", client=client)
        assert result == TurnstileResult(
            success=False, error="Turnstile verification timed out"
        )

    async def test_invalid_json(self):
        async with _client(lambda r: httpx.Response(200, content=b"oops")) as client:
            result = await verify_turnstile("tok", secret="s", client=client)
        assert result.success is False

    @pytest.mark.parametrize("token", ["", "   ", None])
    async def test_missing_token_skips_request(self, token):
        def handler(request):
            raise AssertionError("no request expected")

        async with _client(handler) as client:
            result = await verify_turnstile(token, secret="s", client=client)
        assert result.success is False
        assert result.error == "Missing Turnstile token"
