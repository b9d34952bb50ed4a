"""
Lehrershow Song Submissions - Spotify Search

Backs the "search" option of the submission form: visitors type a title or
artist and pick one of the returned tracks.

Authentication uses the client-credentials flow.  The bearer token is held
in a process-wide `SpotifyTokenCache`:

- readers get the cached token without locking while it is still valid
- on expiry exactly one caller fetches a new token; everyone who queued up
  behind the lock reuses that token
- a 401 from the API triggers one forced refresh and one retry, never more
"""

from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from loguru import logger

from src.config import (
    HTTP_TIMEOUT,
    SPOTIFY_API_URL,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_TOKEN_TTL,
    SPOTIFY_TOKEN_URL,
)
from src.errors import MusicSearchError, ValidationError

# Refresh a little before Spotify's own expiry
_EXPIRY_MARGIN = 60

_TRACK_ID_RE = re.compile(r"^[A-Za-z0-9]{1,64}$")


@dataclass
class SpotifyTrack:
    id: str
    title: str
    artist: str
    album_art: str | None
    spotify_url: str | None
    album_name: str | None = None
    duration_ms: int | None = None
    preview_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "albumArt": self.album_art,
            "spotifyUrl": self.spotify_url,
            "albumName": self.album_name,
            "durationMs": self.duration_ms,
            "previewUrl": self.preview_url,
        }


def _parse_track(track: dict[str, Any]) -> SpotifyTrack:
    album = track.get("album") or {}
    images = album.get("images") or []
    artists = track.get("artists") or []
    return SpotifyTrack(
        id=track.get("id", ""),
        title=track.get("name", ""),
        artist=", ".join(a.get("name", "") for a in artists if a.get("name")),
        album_art=images[0].get("url") if images else None,
        spotify_url=(track.get("external_urls") or {}).get("spotify"),
        album_name=album.get("name"),
        duration_ms=track.get("duration_ms"),
        preview_url=track.get("preview_url"),
    )


# ---------------------------------------------------------------------------
# Token cache
# ---------------------------------------------------------------------------
class SpotifyTokenCache:
    """Caches the client-credentials bearer token across requests."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        ttl: float = SPOTIFY_TOKEN_TTL,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client_id = SPOTIFY_CLIENT_ID if client_id is None else client_id
        self.client_secret = (
            SPOTIFY_CLIENT_SECRET if client_secret is None else client_secret
        )
        self.ttl = ttl
        self._clock = clock
        self._client = client
        self._owns_client = client is None
        self._lock = asyncio.Lock()
        self._token: str | None = None
        self._expires_at = 0.0

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=HTTP_TIMEOUT)
        return self._client

    def _valid(self) -> bool:
        return self._token is not None and self._clock() < self._expires_at

    async def get(self) -> str:
        """Return a valid bearer token, fetching one if needed."""
        if self._valid():
            return self._token  # type: ignore[return-value]

        async with self._lock:
            # Another caller may have refreshed while we waited
            if self._valid():
                return self._token  # type: ignore[return-value]
            return await self._fetch_token()

    async def refresh(self, stale: str | None = None) -> str:
        """
        Force a new token.

        When *stale* is given and the cached token has already been replaced
        by a concurrent refresh, the newer token is returned instead of
        fetching again.
        """
        async with self._lock:
            if stale is not None and self._token != stale and self._valid():
                return self._token  # type: ignore[return-value]
            return await self._fetch_token()

    async def _fetch_token(self) -> str:
        try:
            resp = await self.client.post(
                SPOTIFY_TOKEN_URL,
                auth=httpx.BasicAuth(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
            )
        except httpx.HTTPError as e:
            logger.warning("⚠️ Spotify token request failed: {}", e)
            raise MusicSearchError("Failed to fetch Spotify token") from e

        if not resp.is_success:
            logger.warning("⚠️ Spotify token request HTTP {}", resp.status_code)
            raise MusicSearchError("Failed to fetch Spotify token")

        try:
            data = resp.json()
            token = data["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise MusicSearchError("Failed to fetch Spotify token") from e

        expires_in = data.get("expires_in")
        lifetime = float(self.ttl)
        if isinstance(expires_in, (int, float)) and expires_in > _EXPIRY_MARGIN:
            lifetime = min(lifetime, float(expires_in) - _EXPIRY_MARGIN)

        self._token = token
        self._expires_at = self._clock() + lifetime
        logger.debug("🔑 Spotify token refreshed (valid for {}s)", int(lifetime))
        return token

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


_token_cache: SpotifyTokenCache | None = None


def get_token_cache() -> SpotifyTokenCache:
    """Return the process-wide token cache, creating it on first use."""
    global _token_cache
    if _token_cache is None:
        _token_cache = SpotifyTokenCache()
    return _token_cache


async def close_client() -> None:
    """Close the shared HTTP client of the process-wide token cache."""
    global _token_cache
    if _token_cache is not None:
        await _token_cache.aclose()
        _token_cache = None


# ---------------------------------------------------------------------------
# API calls
# ---------------------------------------------------------------------------
async def _authorized_get(
    cache: SpotifyTokenCache,
    path: str,
    params: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """GET an API path with the cached bearer token, retrying once on 401."""
    url = f"{SPOTIFY_API_URL.rstrip('/')}/{path.lstrip('/')}"
    token = await cache.get()

    try:
        resp = await cache.client.get(
            url, params=params, headers={"Authorization": f"Bearer {token}"}
        )
        if resp.status_code == 401:
            logger.info("🔑 Spotify rejected cached token, refreshing once")
            token = await cache.refresh(stale=token)
            resp = await cache.client.get(
                url, params=params, headers={"Authorization": f"Bearer {token}"}
            )
    except httpx.HTTPError as e:
        logger.warning("⚠️ Spotify request to {} failed: {}", path, e)
        raise MusicSearchError("Spotify request failed") from e

    if not resp.is_success:
        logger.warning("⚠️ Spotify {} returned HTTP {}", path, resp.status_code)
        raise MusicSearchError(f"Spotify request failed (HTTP {resp.status_code})")

    try:
        data = resp.json()
    except ValueError as e:
        raise MusicSearchError("Unreadable Spotify response") from e

    if not isinstance(data, dict):
        logger.warning("⚠️ Spotify {} returned a non-object body", path)
        raise MusicSearchError("Unreadable Spotify response")
    return data


async def search_tracks(
    query: str,
    limit: int = 5,
    cache: SpotifyTokenCache | None = None,
) -> list[SpotifyTrack]:
    """Search Spotify for tracks matching *query*."""
    if not query or not query.strip():
        return []

    cache = cache or get_token_cache()
    data = await _authorized_get(
        cache,
        "search",
        params={"q": query.strip(), "type": "track", "limit": str(limit)},
    )
    try:
        page = data.get("tracks", {})
        items = page.get("items") or []
        tracks = [_parse_track(t) for t in items if isinstance(t, dict)]
    except (AttributeError, TypeError, KeyError) as e:
        logger.warning("⚠️ Unexpected Spotify search response: {}", e)
        raise MusicSearchError("Unreadable Spotify response") from e
    logger.debug("🔍 Spotify search '{}' returned {} track(s)", query, len(tracks))
    return tracks


async def get_track(
    track_id: str,
    cache: SpotifyTokenCache | None = None,
) -> SpotifyTrack:
    """Fetch a single track by its Spotify id."""
    if not track_id or not _TRACK_ID_RE.match(track_id):
        raise ValidationError("Invalid Spotify track id.")

    cache = cache or get_token_cache()
    data = await _authorized_get(cache, f"tracks/{track_id}")
    try:
        return _parse_track(data)
    except (AttributeError, TypeError, KeyError) as e:
        logger.warning("⚠️ Unexpected Spotify track response: {}", e)
        raise MusicSearchError("Unreadable Spotify response") from e
