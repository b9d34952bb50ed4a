"""
Lehrershow Song Submissions - Upload Reference Validation

Audio files are uploaded by the browser straight to UploadThing; the server
only ever sees the resulting public URL.  That URL is accepted only if it
points at our own tenant, e.g.::

    https://<UPLOADTHING_ID>.ufs.sh/f/<file key>
"""

import re
from urllib.parse import urlsplit

from src.config import UPLOAD_PROVIDER_DOMAIN, UPLOADTHING_ID

MIN_FILE_KEY_LENGTH = 8
MAX_FILE_KEY_LENGTH = 256

_FILE_PATH_RE = re.compile(r"^/f/([A-Za-z0-9_-]+)(?:/.*)?$")


def expected_upload_host(
    tenant_id: str | None = None, provider_domain: str | None = None
) -> str:
    tenant = UPLOADTHING_ID if tenant_id is None else tenant_id
    domain = UPLOAD_PROVIDER_DOMAIN if provider_domain is None else provider_domain
    return f"{tenant}.{domain}".lower()


def is_valid_upload_url(
    url: str | None,
    tenant_id: str | None = None,
    provider_domain: str | None = None,
) -> bool:
    """
    Return True if *url* is an https file URL served from our upload tenant.

    Never raises: anything that cannot be parsed is simply not valid.
    """
    tenant = UPLOADTHING_ID if tenant_id is None else tenant_id
    if not url or not tenant:
        return False

    try:
        parsed = urlsplit(url.strip())
        if parsed.scheme != "https":
            return False

        if parsed.username is not None or parsed.password is not None:
            return False

        # hostname is lowercased by urlsplit; the default https port is allowed
        if parsed.hostname != expected_upload_host(tenant, provider_domain):
            return False
        if parsed.port not in (None, 443):
            return False

        match = _FILE_PATH_RE.match(parsed.path)
        if not match:
            return False

        key = match.group(1)
        return MIN_FILE_KEY_LENGTH <= len(key) <= MAX_FILE_KEY_LENGTH
    except (ValueError, TypeError, AttributeError):
        return False
