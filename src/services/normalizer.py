"""
Lehrershow Song Submissions - Title / Artist Resolution

Every stored submission gets a display title and artist, whatever way the
song was submitted:

============  ==============================  ======================================
type          title                           artist
============  ==============================  ======================================
search        the search text                 submitter name
youtube       video title (None if unknown)   channel name, else submitter name
file          the song name typed by the user submitter name
============  ==============================  ======================================
"""

from typing import Optional, Tuple

from src.services.youtube import VideoMetadata


def resolve_title_artist(
    submission_type: str,
    song_search: Optional[str],
    youtube_metadata: Optional[VideoMetadata],
    uploaded_song_name: Optional[str],
    submitter_name: str,
) -> Tuple[Optional[str], str]:
    """Return the (title, artist) pair for a submission."""
    if submission_type == "search":
        return song_search, submitter_name

    if submission_type == "youtube":
        metadata = youtube_metadata or VideoMetadata()
        return metadata.title, metadata.channel_name or submitter_name

    if submission_type == "file":
        return uploaded_song_name, submitter_name

    raise ValueError(f"Unknown submission type: {submission_type!r}")
