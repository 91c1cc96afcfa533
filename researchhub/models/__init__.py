"""Data models."""

from researchhub.models.submission import (
    FileRef,
    Status,
    Submission,
    SubmissionPatch,
    SubmissionType,
    UploadedFile,
)

__all__ = [
    "FileRef",
    "Status",
    "Submission",
    "SubmissionPatch",
    "SubmissionType",
    "UploadedFile",
]
