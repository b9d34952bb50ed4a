"""
Lehrershow Song Submissions - Site Settings

A single toggle, ``allowNewSubmissions``, read and written by staff from the
dashboard.  Reading never creates the row; the first write does.
"""

from typing import Any, Dict

from src.auth import require_subject
from src.database import get_settings_row, upsert_settings_row

DEFAULT_ALLOW_NEW_SUBMISSIONS = True


def _allow_from_row(row) -> bool:
    if not row or row.get("allow_new_submissions") is None:
        return DEFAULT_ALLOW_NEW_SUBMISSIONS
    return bool(row["allow_new_submissions"])


async def submissions_open() -> bool:
    """Return whether the public form currently accepts submissions."""
    return _allow_from_row(await get_settings_row())


async def get_settings(subject: str | None) -> Dict[str, Any]:
    require_subject(subject)
    return {"allowNewSubmissions": await submissions_open()}


async def update_settings(
    subject: str | None, allow_new_submissions: bool
) -> Dict[str, Any]:
    """Store the toggle, creating the settings row on first write."""
    subject = require_subject(subject)
    row_id = await upsert_settings_row(bool(allow_new_submissions), updated_by=subject)
    return {"id": row_id, "allowNewSubmissions": bool(allow_new_submissions)}
