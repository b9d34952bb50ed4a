"""
Lehrershow Song Submissions - Staff Session Auth

Staff sign in with the username and password from the environment
(AUTH_USERNAME / AUTH_PASSWORD) and receive a signed session cookie.  The
rest of the application only ever asks one question: who is the current
subject?  `current_subject(request)` answers it, and `require_subject()`
turns "nobody" into an `AuthorizationError`.

Usage:
    - Call `current_subject(request)` in a route and pass the result into
      the gated service function.
    - Gated service functions call `require_subject(subject)` first.
"""

import hashlib
import hmac
import json
import time
from typing import Any

from fastapi import Request, Response

from src.config import (
    AUTH_PASSWORD,
    AUTH_USERNAME,
    SECRET_KEY,
    SESSION_COOKIE_NAME,
    SESSION_MAX_AGE,
)
from src.errors import AuthorizationError

# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def _sign(payload: str) -> str:
    """Create an HMAC-SHA256 signature for a payload string."""
    return hmac.new(
        SECRET_KEY.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def _create_session_cookie(username: str) -> str:
    """Create a signed session cookie value."""
    data = json.dumps({"sub": username, "ts": int(time.time())})
    sig = _sign(data)
    return f"{data}|{sig}"


def _parse_session_cookie(cookie_value: str) -> dict[str, Any] | None:
    """Parse and verify a session cookie.  Returns the session dict or None."""
    if not cookie_value or "|" not in cookie_value:
        return None

    try:
        data_part, sig_part = cookie_value.rsplit("|", 1)
        expected_sig = _sign(data_part)

        if not hmac.compare_digest(sig_part, expected_sig):
            return None

        session = json.loads(data_part)
    except (ValueError, TypeError):
        return None

    if not isinstance(session, dict):
        return None

    # Check expiry
    created = session.get("ts", 0)
    if not isinstance(created, (int, float)) or time.time() - created > SESSION_MAX_AGE:
        return None

    return session


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def current_subject(request: Request) -> str | None:
    """Return the signed-in staff subject, or None if not authenticated."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME, "")
    session = _parse_session_cookie(cookie)
    if session:
        return session.get("sub") or None
    return None


def require_subject(subject: str | None) -> str:
    """Return *subject* or raise AuthorizationError if there is none."""
    if not subject:
        raise AuthorizationError()
    return subject


def verify_credentials(username: str, password: str) -> bool:
    """Verify login credentials against the configured values."""
    if not AUTH_PASSWORD:
        return False

    user_ok = hmac.compare_digest(
        username.lower().encode("utf-8"), AUTH_USERNAME.lower().encode("utf-8")
    )
    pass_ok = hmac.compare_digest(
        password.encode("utf-8"), AUTH_PASSWORD.encode("utf-8")
    )
    return user_ok and pass_ok


def set_session_cookie(response: Response, username: str) -> None:
    """Set the signed session cookie on a response."""
    value = _create_session_cookie(username)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        max_age=SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    """Remove the session cookie."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
    )
