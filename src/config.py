"""
Lehrershow Song Submissions - Configuration
All settings loaded from environment variables with sensible defaults.

Credentials for the hosted services (upload tenant, Turnstile, Spotify) are
required; `check_required_settings()` is called once at startup so a missing
value stops the process instead of failing individual requests.
"""

import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

from src.errors import ConfigurationError

# Load environment variables from .env file
_ = load_dotenv()

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
APP_ENV = os.getenv("APP_ENV", "development")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
DEBUG = os.getenv("DEBUG", "true").lower() == "true"
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")

# ---------------------------------------------------------------------------
# Staff authentication (signed session cookie)
# ---------------------------------------------------------------------------
AUTH_USERNAME = os.getenv("AUTH_USERNAME", "lehrershow")
AUTH_PASSWORD = os.getenv("AUTH_PASSWORD", "")  # MUST be set in .env
SESSION_COOKIE_NAME = "ls_session"
# Default 30 days
SESSION_MAX_AGE = int(os.getenv("SESSION_MAX_AGE", str(60 * 60 * 24 * 30)))

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
TEMP_DIR = Path(
    os.getenv("TEMP_DIR", os.path.join(tempfile.gettempdir(), "lehrershow"))
)
DB_PATH = Path(os.getenv("DB_PATH", os.path.join(TEMP_DIR, "lehrershow.db")))

# ---------------------------------------------------------------------------
# Logging - stdout only
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# ---------------------------------------------------------------------------
# Outbound HTTP
# ---------------------------------------------------------------------------
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))

# ---------------------------------------------------------------------------
# Upload provider (UploadThing)
#
# Uploaded files are served from https://<UPLOADTHING_ID>.<domain>/f/<key>
# ---------------------------------------------------------------------------
UPLOADTHING_ID = os.getenv("UPLOADTHING_ID", "")
UPLOAD_PROVIDER_DOMAIN = os.getenv("UPLOAD_PROVIDER_DOMAIN", "ufs.sh")

# ---------------------------------------------------------------------------
# Cloudflare Turnstile
# ---------------------------------------------------------------------------
TURNSTILE_SECRET_KEY = os.getenv("TURNSTILE_SECRET_KEY", "")
TURNSTILE_VERIFY_URL = os.getenv(
    "TURNSTILE_VERIFY_URL",
    "https://challenges.cloudflare.com/turnstile/v0/siteverify",
)

# ---------------------------------------------------------------------------
# YouTube Data API v3
# ---------------------------------------------------------------------------
# Optional: without a key, metadata lookups return an empty result
YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY", "")
YOUTUBE_API_URL = os.getenv(
    "YOUTUBE_API_URL", "https://www.googleapis.com/youtube/v3"
)

# ---------------------------------------------------------------------------
# Spotify Web API (client credentials)
# ---------------------------------------------------------------------------
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_TOKEN_URL = os.getenv(
    "SPOTIFY_TOKEN_URL", "https://accounts.spotify.com/api/token"
)
SPOTIFY_API_URL = os.getenv("SPOTIFY_API_URL", "https://api.spotify.com/v1")
# Bearer token cache lifetime in seconds, default 50 minutes
SPOTIFY_TOKEN_TTL = int(os.getenv("SPOTIFY_TOKEN_TTL", str(50 * 60)))

# ---------------------------------------------------------------------------
# Submission limits
# ---------------------------------------------------------------------------
MAX_TEXT_LENGTH = int(os.getenv("MAX_TEXT_LENGTH", "500"))
MAX_ADDITIONAL_INFO_LENGTH = int(os.getenv("MAX_ADDITIONAL_INFO_LENGTH", "2000"))

REQUIRED_SETTINGS = (
    "UPLOADTHING_ID",
    "TURNSTILE_SECRET_KEY",
    "SPOTIFY_CLIENT_ID",
    "SPOTIFY_CLIENT_SECRET",
)


def check_required_settings() -> None:
    """Raise ConfigurationError if a required credential is missing.

    Called from the application lifespan so misconfiguration is fatal at
    startup rather than a per-request error.
    """
    values = globals()
    missing = [name for name in REQUIRED_SETTINGS if not values.get(name)]
    if missing:
        raise ConfigurationError(
            "Missing required environment variable(s): " + ", ".join(missing)
        )

    if APP_ENV == "production" and SECRET_KEY == "change-me-in-production":
        raise ConfigurationError(
            "SECRET_KEY must be changed from the default value in production. "
            "Set the SECRET_KEY environment variable to a random secret."
        )


def ensure_directories() -> None:
    """Create the local directory holding the SQLite database."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
