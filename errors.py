"""
Error taxonomy shared by the scorer, the selection store and the API layer.

Duplicate shortlist/lock attempts are not errors; they are reported through
SelectionStatus in schemas.py.
"""


class CounsellorError(Exception):
    """Base class for counsellor errors."""


class DataValidationError(CounsellorError, ValueError):
    """Malformed or missing required input."""


class NotFoundError(CounsellorError):
    """A referenced student or university does not exist."""


class ExternalSourceError(CounsellorError):
    """The university directory failed or timed out. Safe to retry."""

    def __init__(self, message: str, source: str = "live"):
        super().__init__(message)
        self.source = source
