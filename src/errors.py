"""
Lehrershow Song Submissions - Error Types

Services raise these; the FastAPI app turns every `SubmissionError` into a
JSON response ``{"detail": message}`` with the class's status code.
"""


class ConfigurationError(RuntimeError):
    """A required setting is missing or invalid (fatal at startup)."""


class SubmissionError(Exception):
    """Base class for errors reported back to the API caller."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SubmissionError):
    """Missing or malformed submitter or song fields."""

    status_code = 400


class AuthorizationError(SubmissionError):
    """No authenticated subject on a gated read or write."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class SubmissionsClosedError(SubmissionError):
    """New submissions are switched off in the settings."""

    status_code = 403

    def __init__(self, message: str = "New submissions are currently closed."):
        super().__init__(message)


class NotFoundError(SubmissionError):
    status_code = 404


class UpstreamVerificationError(SubmissionError):
    """The CAPTCHA check rejected the request or could not be completed."""

    status_code = 400


class MusicSearchError(SubmissionError):
    """The music search provider failed or returned an unusable response."""

    status_code = 502
