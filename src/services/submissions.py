"""
Lehrershow Song Submissions - Submission Intake & Store

The public form posts a song in one of three ways:

- ``search``:  free text (usually picked from the Spotify search box)
- ``youtube``: a YouTube URL or video id
- ``file``:    the URL of an audio file the browser uploaded to UploadThing

`validate_submission()` is the single authoritative check for all of them.
It runs first on every request, whatever the browser already checked.

`submit_song()` is the full intake pipeline::

    validate -> settings open? -> Turnstile -> YouTube metadata -> title/artist -> insert

Turnstile must succeed before anything is written; a failed metadata lookup
only means the fallback title/artist are used.

Staff-facing reads and the approval action are gated by `require_subject()`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from loguru import logger

from src.auth import require_subject
from src.config import MAX_ADDITIONAL_INFO_LENGTH, MAX_TEXT_LENGTH
from src.database import (
    get_submission_by_id,
    get_submissions_by_acceptance,
    insert_submission,
    mark_submission_accepted,
    update_submission_notes,
)
from src.errors import (
    NotFoundError,
    SubmissionsClosedError,
    UpstreamVerificationError,
    ValidationError,
)
from src.services.normalizer import resolve_title_artist
from src.services.settings import submissions_open
from src.services.turnstile import TurnstileResult, verify_turnstile
from src.services.uploads import is_valid_upload_url
from src.services.youtube import VideoMetadata, extract_youtube_id, fetch_video_metadata

SUBMISSION_TYPES = ("search", "youtube", "file")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

Verifier = Callable[..., Awaitable[TurnstileResult]]
MetadataFetcher = Callable[[str], Awaitable[VideoMetadata]]


@dataclass(frozen=True)
class ValidatedSubmission:
    name: str
    email: str
    submission_type: str
    song_search: Optional[str] = None
    youtube_id: Optional[str] = None
    song_file: Optional[str] = None
    song_name: Optional[str] = None
    additional_info: Optional[str] = None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _clean(value: Any) -> Optional[str]:
    """Strip a form value; non-strings and blank strings become None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _check_length(value: Optional[str], limit: int, label: str) -> None:
    if value is not None and len(value) > limit:
        raise ValidationError(f"{label} must be at most {limit} characters.")


def validate_submission(payload: Mapping[str, Any]) -> ValidatedSubmission:
    """
    Validate a raw submission payload (camelCase keys as sent by the form).

    Returns the cleaned submission with only the field of the chosen type
    kept, or raises ValidationError with a human-readable reason.
    """
    name = _clean(payload.get("name"))
    if not name:
        raise ValidationError("Name is required.")
    _check_length(name, MAX_TEXT_LENGTH, "Name")

    email = _clean(payload.get("email"))
    if not email or not _EMAIL_RE.match(email):
        raise ValidationError("A valid email is required.")
    _check_length(email, MAX_TEXT_LENGTH, "Email")

    submission_type = payload.get("submissionType")
    if submission_type not in SUBMISSION_TYPES:
        raise ValidationError("Invalid submission type.")

    additional_info = _clean(payload.get("additionalInfo"))
    _check_length(additional_info, MAX_ADDITIONAL_INFO_LENGTH, "Additional info")

    fields: Dict[str, Optional[str]] = {}

    if submission_type == "search":
        song_search = _clean(payload.get("songSearch"))
        if not song_search:
            raise ValidationError("For search submissions, provide a songSearch value.")
        _check_length(song_search, MAX_TEXT_LENGTH, "Song search")
        fields["song_search"] = song_search

    elif submission_type == "youtube":
        youtube_url = _clean(payload.get("youtubeUrl")) or _clean(payload.get("youtubeId"))
        if not youtube_url:
            raise ValidationError("For YouTube submissions, provide a youtubeUrl.")
        youtube_id = extract_youtube_id(youtube_url)
        if not youtube_id:
            raise ValidationError("Please provide a valid YouTube URL or video id.")
        fields["youtube_id"] = youtube_id

    else:
        song_file = _clean(payload.get("songFile"))
        if not song_file:
            raise ValidationError("For file submissions, provide a songFile URL.")
        if not is_valid_upload_url(song_file):
            raise ValidationError(
                "songFile must be a valid upload URL served from the configured upload tenant."
            )
        song_name = _clean(payload.get("songName"))
        if not song_name:
            raise ValidationError("For file submissions, provide the song name.")
        _check_length(song_name, MAX_TEXT_LENGTH, "Song name")
        fields["song_file"] = song_file
        fields["song_name"] = song_name

    return ValidatedSubmission(
        name=name,
        email=email,
        submission_type=submission_type,
        additional_info=additional_info,
        **fields,
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def serialize_submission(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a database row into the API shape of a submission."""
    record: Dict[str, Any] = {
        "id": row["id"],
        "submitter": {
            "name": row["submitter_name"],
            "email": row["submitter_email"],
        },
        "submissionType": row["submission_type"],
        "title": row.get("title"),
        "artist": row.get("artist"),
        "isAccepted": bool(row.get("is_accepted")),
        "createdAt": row.get("created_at"),
    }

    kind_field = {
        "search": ("songSearch", "song_search"),
        "youtube": ("youtubeId", "youtube_id"),
        "file": ("songFile", "song_file"),
    }.get(row["submission_type"])
    if kind_field and row.get(kind_field[1]) is not None:
        record[kind_field[0]] = row[kind_field[1]]

    if row.get("additional_info"):
        record["additionalInfo"] = row["additional_info"]
    if row.get("notes"):
        record["notes"] = row["notes"]
    if row.get("accepted_by"):
        record["acceptedBy"] = row["accepted_by"]
        record["acceptedAt"] = row.get("accepted_at")

    return record


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------
async def create_submission(
    submission: ValidatedSubmission | Mapping[str, Any],
    title: Optional[str],
    artist: Optional[str],
) -> int:
    """
    Validate (if needed) and store a new pending submission.

    *title* and *artist* are stored as given; `submit_song()` resolves them
    with `resolve_title_artist()`.  Returns the id of the new record.
    """
    if not isinstance(submission, ValidatedSubmission):
        submission = validate_submission(submission)

    return await insert_submission(
        submitter_name=submission.name,
        submitter_email=submission.email,
        submission_type=submission.submission_type,
        song_search=submission.song_search,
        youtube_id=submission.youtube_id,
        song_file=submission.song_file,
        title=title,
        artist=artist,
        additional_info=submission.additional_info,
    )


async def list_approved(subject: str | None) -> List[Dict[str, Any]]:
    """Return all approved submissions (staff only)."""
    require_subject(subject)
    rows = await get_submissions_by_acceptance(True)
    return [serialize_submission(r) for r in rows]


async def list_pending(subject: str | None) -> List[Dict[str, Any]]:
    """Return all submissions still awaiting review (staff only)."""
    require_subject(subject)
    rows = await get_submissions_by_acceptance(False)
    return [serialize_submission(r) for r in rows]


async def approve_submission(subject: str | None, submission_id: int) -> Dict[str, Any]:
    """
    Approve a submission (staff only).

    Approval is one-way.  Approving an already approved submission is a
    no-op that keeps the original approver and timestamp.
    """
    subject = require_subject(subject)
    if await get_submission_by_id(submission_id) is None:
        raise NotFoundError("Submission not found.")

    if await mark_submission_accepted(submission_id, accepted_by=subject):
        logger.info("👍 Submission {} approved by '{}'", submission_id, subject)
    else:
        logger.debug("Submission {} was already approved", submission_id)

    row = await get_submission_by_id(submission_id)
    return serialize_submission(row or {})


async def set_submission_notes(
    subject: str | None, submission_id: int, notes: Optional[str]
) -> Dict[str, Any]:
    """Replace the staff notes on a submission (staff only)."""
    require_subject(subject)
    notes = _clean(notes)
    _check_length(notes, MAX_ADDITIONAL_INFO_LENGTH, "Notes")

    if not await update_submission_notes(submission_id, notes):
        raise NotFoundError("Submission not found.")

    row = await get_submission_by_id(submission_id)
    return serialize_submission(row or {})


# ---------------------------------------------------------------------------
# Intake pipeline
# ---------------------------------------------------------------------------
async def submit_song(
    payload: Mapping[str, Any],
    turnstile_token: Optional[str] = None,
    remote_ip: Optional[str] = None,
    verifier: Optional[Verifier] = None,
    metadata_fetcher: Optional[MetadataFetcher] = None,
) -> Dict[str, Any]:
    """
    Run a public submission through the whole intake pipeline.

    *turnstile_token* defaults to ``payload["turnstileToken"]``.  Returns
    ``{"id", "title", "artist"}`` of the stored record.  *verifier* and
    *metadata_fetcher* default to the Turnstile and YouTube Data API clients.
    """
    verifier = verifier or verify_turnstile
    metadata_fetcher = metadata_fetcher or fetch_video_metadata

    submission = validate_submission(payload)

    if not await submissions_open():
        raise SubmissionsClosedError()

    token = turnstile_token if turnstile_token is not None else payload.get("turnstileToken")
    try:
        verification = await verifier(token, remote_ip=remote_ip)
    except Exception as e:
        logger.warning("⚠️ Turnstile verifier raised: {}", e)
        raise UpstreamVerificationError("Captcha verification failed.") from e

    if not verification.success:
        raise UpstreamVerificationError("Captcha verification failed.")

    metadata: Optional[VideoMetadata] = None
    if submission.submission_type == "youtube" and submission.youtube_id:
        try:
            metadata = await metadata_fetcher(submission.youtube_id)
        except Exception as e:
            logger.warning(
                "⚠️ YouTube metadata lookup failed for {}: {}", submission.youtube_id, e
            )
            metadata = VideoMetadata()

    title, artist = resolve_title_artist(
        submission.submission_type,
        submission.song_search,
        metadata,
        submission.song_name,
        submission.name,
    )
    submission_id = await create_submission(submission, title, artist)

    return {"id": submission_id, "title": title, "artist": artist}
