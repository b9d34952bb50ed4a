"""
Lehrershow Song Submissions - Cloudflare Turnstile Verification

Verifies the challenge token the submission form obtained from Turnstile.
One POST to the siteverify endpoint, no retries.  Every failure (HTTP error,
timeout, unreadable response) comes back as ``success=False`` rather than an
exception, so callers only have to look at one flag.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx
from loguru import logger

from src.config import HTTP_TIMEOUT, TURNSTILE_SECRET_KEY, TURNSTILE_VERIFY_URL


@dataclass
class TurnstileResult:
    success: bool
    challenge_ts: str | None = None
    hostname: str | None = None
    error_codes: list[str] = field(default_factory=list)
    error: str | None = None


async def verify_turnstile(
    token: str | None,
    remote_ip: str | None = None,
    secret: str | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float = HTTP_TIMEOUT,
) -> TurnstileResult:
    """Verify a Turnstile token with Cloudflare."""
    if not token or not token.strip():
        return TurnstileResult(success=False, error="Missing Turnstile token")

    form = {
        "secret": secret if secret is not None else TURNSTILE_SECRET_KEY,
        "response": token.strip(),
    }
    if remote_ip:
        form["remoteip"] = remote_ip

    async def _do_verify(c: httpx.AsyncClient) -> TurnstileResult:
        resp = await c.post(TURNSTILE_VERIFY_URL, data=form)
        if not resp.is_success:
            logger.warning("⚠️ Turnstile verify HTTP {}", resp.status_code)
            return TurnstileResult(
                success=False, error=f"Turnstile verify HTTP {resp.status_code}"
            )

        data = resp.json()
        if not isinstance(data, dict):
            return TurnstileResult(success=False, error="Unexpected Turnstile response")

        result = TurnstileResult(
            success=data.get("success") is True,
            challenge_ts=data.get("challenge_ts"),
            hostname=data.get("hostname"),
            error_codes=list(data.get("error-codes") or []),
        )
        if not result.success:
            logger.warning("🤖 Turnstile rejected token: {}", result.error_codes)
        return result

    try:
        if client is not None:
            return await _do_verify(client)
        async with httpx.AsyncClient(timeout=timeout) as c:
            return await _do_verify(c)
    except httpx.TimeoutException:
        logger.warning("⏱️ Turnstile verification timed out")
        return TurnstileResult(success=False, error="Turnstile verification timed out")
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("⚠️ Turnstile verification error: {}", e)
        return TurnstileResult(success=False, error=str(e) or "Unknown error")
