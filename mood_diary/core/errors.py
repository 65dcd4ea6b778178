"""
Exception hierarchy for the mood diary.

Every error carries a machine-readable `code` so callers (CLI, HTTP layer)
can branch on it without parsing messages.
"""

from typing import Any, Dict, Optional


class MoodDiaryError(Exception):
    """Base class for all application-level errors."""
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# ============================================================================
# INPUT ERRORS
# ============================================================================

class InvalidDateError(MoodDiaryError):
    """Raised for malformed or future target dates."""
    code = "INVALID_DATE"

    def __init__(self, value: str, reason: str = "Invalid date format. Use YYYY-MM-DD"):
        super().__init__(message=reason, details={"date": value})


class NoListeningHistoryError(MoodDiaryError):
    """Raised when there is nothing at all to analyze."""
    code = "NO_LISTENING_HISTORY"


# ============================================================================
# COLLABORATOR ERRORS
# ============================================================================

class ListeningHistoryError(MoodDiaryError):
    """Raised when the listening history cannot be fetched."""
    code = "LISTENING_HISTORY_UNAVAILABLE"


class TextGenerationError(MoodDiaryError):
    """Raised when the text generator fails to produce a response."""
    code = "TEXT_GENERATION_FAILED"


class StorageError(MoodDiaryError):
    """Raised when the daily analysis store fails."""
    code = "STORAGE_ERROR"


class AnalysisLockedError(StorageError):
    """Raised on a write against a day that is already complete."""
    code = "ANALYSIS_LOCKED"

    def __init__(self, user_id: str, date: str):
        super().__init__(
            message=f"Analysis for {date} is complete and can no longer change.",
            details={"user_id": user_id, "date": date},
        )
