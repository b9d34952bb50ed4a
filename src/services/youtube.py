"""
Lehrershow Song Submissions - YouTube Helpers

- Extracts the canonical 11-character video id from the URL shapes people
  paste into the form (watch, youtu.be, embed, v/, shorts) or from a bare id
- Looks up the video title and channel name via the YouTube Data API v3

The metadata lookup is best-effort: failures are logged and an empty
`VideoMetadata` is returned so a submission is never blocked by the API.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import httpx
from loguru import logger

from src.config import HTTP_TIMEOUT, YOUTUBE_API_KEY, YOUTUBE_API_URL

# The id must sit exactly where the URL shape puts it and be followed by the
# end of the string or a delimiter, so a longer token is never truncated.
_YOUTUBE_URL_RE = re.compile(
    r"^(?:https?://)?(?:(?:www|m)\.)?"
    r"(?:youtu\.be/|youtube\.com/(?:embed/|v/|shorts/|watch\?v=|watch\?\S*?&v=))"
    r"([A-Za-z0-9_-]{11})"
    r"(?:[?&#/]\S*)?$",
    re.IGNORECASE,
)

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")


@dataclass(frozen=True)
class VideoMetadata:
    title: str | None = None
    channel_name: str | None = None


def extract_youtube_id(value: str | None) -> str | None:
    """
    Return the 11-character video id for a YouTube URL or bare id.

    Returns None when the input matches none of the recognized shapes.
    """
    if not value:
        return None

    text = value.strip()
    match = _YOUTUBE_URL_RE.match(text)
    if match:
        return match.group(1)

    if _VIDEO_ID_RE.match(text):
        return text

    return None


def is_youtube_id(value: str | None) -> bool:
    return bool(value) and bool(_VIDEO_ID_RE.match(value))


async def fetch_video_metadata(
    video_id: str,
    api_key: str | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float = HTTP_TIMEOUT,
) -> VideoMetadata:
    """
    Fetch the title and channel name of a video.

    If *client* is provided it is reused instead of opening a throwaway
    connection.  Returns an empty `VideoMetadata` when no API key is
    configured, the request fails, or the video is unknown.
    """
    key = api_key if api_key is not None else YOUTUBE_API_KEY
    if not key:
        logger.debug("YouTube API key not configured, skipping metadata lookup")
        return VideoMetadata()

    if not is_youtube_id(video_id):
        return VideoMetadata()

    url = f"{YOUTUBE_API_URL.rstrip('/')}/videos"
    params = {"part": "snippet", "id": video_id, "key": key}

    async def _do_fetch(c: httpx.AsyncClient) -> VideoMetadata:
        resp = await c.get(url, params=params)
        resp.raise_for_status()
        data = resp.json()

        items = data.get("items") or []
        if not items:
            logger.debug("No YouTube video found for id {}", video_id)
            return VideoMetadata()

        snippet = items[0].get("snippet") or {}
        metadata = VideoMetadata(
            title=snippet.get("title") or None,
            channel_name=snippet.get("channelTitle") or None,
        )
        logger.info(
            "🎬 YouTube match for {}: '{}' by '{}'",
            video_id,
            metadata.title or "?",
            metadata.channel_name or "?",
        )
        return metadata

    try:
        if client is not None:
            return await _do_fetch(client)
        async with httpx.AsyncClient(timeout=timeout) as c:
            return await _do_fetch(c)
    except httpx.TimeoutException:
        logger.warning("⏱️ YouTube metadata lookup timed out for {}", video_id)
    except httpx.HTTPStatusError as e:
        logger.warning(
            "⚠️ YouTube API HTTP error for {}: {}",
            video_id,
            e.response.status_code,
        )
    except (httpx.HTTPError, ValueError, AttributeError, TypeError) as e:
        logger.warning("⚠️ YouTube metadata lookup error for {}: {}", video_id, e)

    return VideoMetadata()
