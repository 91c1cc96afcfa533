"""Service layer."""

from researchhub.services.access_service import (
    AccessKind,
    AccessPlan,
    FileAccessResolver,
    Requester,
    UrlSigner,
)
from researchhub.services.revision_service import MergeResult, merge
from researchhub.services.storage_service import FileStorage
from researchhub.services.submission_service import SubmissionService
from researchhub.services.window_guard import TimeWindowGuard, WindowAction, is_within_window

__all__ = [
    "AccessKind",
    "AccessPlan",
    "FileAccessResolver",
    "FileStorage",
    "MergeResult",
    "Requester",
    "SubmissionService",
    "TimeWindowGuard",
    "UrlSigner",
    "WindowAction",
    "is_within_window",
    "merge",
]
