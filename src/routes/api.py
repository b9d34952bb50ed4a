"""
Lehrershow Song Submissions - JSON API Routes

Provides the REST API endpoints for:
- Public song submission (search / YouTube / uploaded file)
- Public submission status (is the form open?)
- Spotify track search for the submission form
- Staff dashboard: approved and pending submissions, approval, notes
- Staff settings (allow new submissions)
- Staff login / logout
- Health check

Service errors (`src.errors.SubmissionError`) are turned into JSON
responses by the exception handler registered in `src.main`.
"""

import time
from typing import Optional

from fastapi import APIRouter, Query, Request, Response
from loguru import logger
from pydantic import BaseModel

from src.auth import (
    clear_session_cookie,
    current_subject,
    set_session_cookie,
    verify_credentials,
)
from src.config import APP_VERSION, DB_PATH
from src.database import count_submissions
from src.errors import AuthorizationError
from src.services import spotify
from src.services.settings import get_settings, submissions_open, update_settings
from src.services.submissions import (
    approve_submission,
    list_approved,
    list_pending,
    set_submission_notes,
    submit_song,
)

router = APIRouter(prefix="/api", tags=["API"])

# Track startup time for health check
_START_TIME = time.time()


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------
class SubmissionRequest(BaseModel):
    name: str = ""
    email: str = ""
    additionalInfo: Optional[str] = None
    submissionType: str = ""
    songSearch: Optional[str] = None
    youtubeUrl: Optional[str] = None
    songFile: Optional[str] = None
    songName: Optional[str] = None
    turnstileToken: str = ""


class SettingsUpdate(BaseModel):
    allowNewSubmissions: bool


class NotesUpdate(BaseModel):
    notes: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


def _client_ip(request: Request) -> Optional[str]:
    """Return the visitor's IP, preferring the header set by Cloudflare."""
    forwarded = request.headers.get("cf-connecting-ip")
    if forwarded:
        return forwarded.strip()
    return request.client.host if request.client else None


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@router.get("/health")
async def health_check():
    """Health check endpoint for the service."""
    uptime = round(time.time() - _START_TIME, 2)
    db_ok = DB_PATH.exists()

    return {
        "status": "ok" if db_ok else "degraded",
        "database": "ok" if db_ok else "missing",
        "uptime_seconds": uptime,
        "version": APP_VERSION,
    }


# ---------------------------------------------------------------------------
# Public submission form
# ---------------------------------------------------------------------------
@router.post("/submissions", status_code=201)
async def api_submit_song(body: SubmissionRequest, request: Request):
    """Submit a song.  Requires a valid Turnstile token."""
    return await submit_song(
        body.model_dump(),
        turnstile_token=body.turnstileToken,
        remote_ip=_client_ip(request),
    )


@router.get("/submissions/status")
async def api_submission_status():
    """Tell the form whether new submissions are accepted right now."""
    return {"allowNewSubmissions": await submissions_open()}


@router.get("/spotify/search")
async def api_spotify_search(
    q: str = Query("", max_length=200),
    limit: int = Query(5, ge=1, le=20),
):
    """Search Spotify tracks for the submission form."""
    tracks = await spotify.search_tracks(q, limit=limit)
    return {"items": [t.to_dict() for t in tracks]}


@router.get("/spotify/tracks/{track_id}")
async def api_spotify_track(track_id: str):
    """Look up a single Spotify track."""
    track = await spotify.get_track(track_id)
    return track.to_dict()


# ---------------------------------------------------------------------------
# Staff dashboard
# ---------------------------------------------------------------------------
@router.get("/submissions/approved")
async def api_list_approved(request: Request):
    """List approved submissions."""
    items = await list_approved(current_subject(request))
    return {"total": len(items), "items": items}


@router.get("/submissions/pending")
async def api_list_pending(request: Request):
    """List submissions awaiting review."""
    items = await list_pending(current_subject(request))
    return {"total": len(items), "items": items}


@router.post("/submissions/{submission_id}/approve")
async def api_approve_submission(submission_id: int, request: Request):
    """Approve a submission.  Approval cannot be undone."""
    return await approve_submission(current_subject(request), submission_id)


@router.put("/submissions/{submission_id}/notes")
async def api_update_notes(submission_id: int, body: NotesUpdate, request: Request):
    """Replace the staff notes of a submission."""
    return await set_submission_notes(current_subject(request), submission_id, body.notes)


@router.get("/settings")
async def api_get_settings(request: Request):
    return await get_settings(current_subject(request))


@router.put("/settings")
async def api_update_settings(body: SettingsUpdate, request: Request):
    return await update_settings(current_subject(request), body.allowNewSubmissions)


@router.get("/stats")
async def api_stats(request: Request):
    """Submission counts for the dashboard header."""
    if not current_subject(request):
        raise AuthorizationError()
    return {
        "total": await count_submissions(),
        "approved": await count_submissions(accepted=True),
        "pending": await count_submissions(accepted=False),
    }


# ---------------------------------------------------------------------------
# Staff session
# ---------------------------------------------------------------------------
@router.post("/auth/login")
async def api_login(body: LoginRequest, response: Response):
    if not verify_credentials(body.username, body.password):
        logger.warning("🔒 Failed login attempt for '{}'", body.username)
        raise AuthorizationError("Invalid username or password")

    logger.info("🔓 User '{}' logged in", body.username)
    set_session_cookie(response, body.username)
    return {"user": body.username}


@router.post("/auth/logout")
async def api_logout(request: Request, response: Response):
    user = current_subject(request)
    if user:
        logger.info("🔒 User '{}' logged out", user)
    clear_session_cookie(response)
    return {"ok": True}


@router.get("/auth/me")
async def api_me(request: Request):
    user = current_subject(request)
    if not user:
        raise AuthorizationError()
    return {"user": user}
