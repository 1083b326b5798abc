"""
Error taxonomy shared by the submission pipeline.

Services raise these; ``travel_diary.main`` maps them onto HTTP responses.
"""

from typing import Optional


class DiaryError(Exception):
    """Base class for every error the core reports to its callers."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(DiaryError):
    """Malformed or missing content; carries the offending field."""

    status_code = 400
    public_message = "Invalid submission"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {"detail": self.message, "field": self.field}


class Forbidden(DiaryError):
    status_code = 403
    public_message = "Not authorized"


class NotFound(DiaryError):
    status_code = 404
    public_message = "Entry not found"


class Conflict(DiaryError):
    status_code = 409
    public_message = "Illegal state transition"


class MediaTransformError(DiaryError):
    status_code = 422
    public_message = "Unsupported or corrupt media"


class StorageError(DiaryError):
    """Transaction or filesystem failure. Detail is logged, never returned."""

    status_code = 500
    public_message = "Server error while saving the entry"

    def to_dict(self) -> dict:
        return {"detail": self.public_message}
