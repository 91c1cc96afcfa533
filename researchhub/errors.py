"""Domain errors raised by the submission core.

Every error names the precondition that failed through ``code`` so the
caller can render a precise message. None of them are retried.
"""

from typing import Optional


class SubmissionError(Exception):
    """Base class for all user-visible submission failures."""

    code = "submission_error"
    default_message = "Submission request failed."

    def __init__(
        self,
        message: Optional[str] = None,
        submission_id: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.submission_id = submission_id
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Optional[str]]:
        """Serialize for API responses (``error`` is what clients display)."""
        return {
            "error": self.message,
            "code": self.code,
            "submission_id": self.submission_id,
        }


class EditWindowExpired(SubmissionError):
    code = "edit_window_expired"
    default_message = "You can only revise within 5 minutes after uploading."


class DeleteWindowExpired(SubmissionError):
    code = "delete_window_expired"
    default_message = "You can only delete a draft within 5 minutes after uploading."


class SubmissionLocked(SubmissionError):
    code = "submission_locked"
    default_message = "This submission has already been reviewed and can no longer be changed."


class NotFound(SubmissionError):
    code = "not_found"
    default_message = "Submission not found."


class Forbidden(SubmissionError):
    code = "forbidden"
    default_message = "You do not have access to this submission."


class NoFileAttached(SubmissionError):
    code = "no_file_attached"
    default_message = "This submission has no attached file."


class InvalidTransition(SubmissionError):
    code = "invalid_transition"
    default_message = "This status change is not allowed."


class ValidationFailed(SubmissionError):
    """Missing or malformed input; ``field`` names the offending input."""

    code = "validation_failed"
    default_message = "Submission input is invalid."

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        submission_id: Optional[str] = None,
    ):
        super().__init__(message, submission_id)
        self.field = field

    def to_dict(self) -> dict[str, Optional[str]]:
        data = super().to_dict()
        data["field"] = self.field
        return data
