"""Helpers shared by API routers: identity, uploads, and JSON shapes."""

from typing import Any, Optional

from fastapi import Header, HTTPException, Request
from pydantic import BaseModel

from researchhub.models.submission import Submission, UploadedFile
from researchhub.services.access_service import is_reviewer_role, require_reviewer_role
from researchhub.services.storage_service import guess_mime_type
from researchhub.services.submission_service import SubmissionService
from researchhub.services.window_guard import WindowAction
from researchhub.utils.clock import to_iso


class Identity(BaseModel):
    """Caller identity as forwarded by the session layer."""

    user_id: str
    role: str = "student"

    @property
    def is_reviewer(self) -> bool:
        return is_reviewer_role(self.role)


def get_identity(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Identity:
    """Read ``X-User-Id`` / ``X-User-Role``; 401 when no user is given."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Session expired. Please sign in again.")
    role = (x_user_role or "student").strip().lower()
    return Identity(user_id=x_user_id.strip(), role=role)


def require_reviewer(identity: Identity) -> None:
    require_reviewer_role(identity.role)


def get_service(request: Request) -> SubmissionService:
    return request.app.state.service


async def to_uploaded_file(upload: Any) -> Optional[UploadedFile]:
    """Convert a multipart upload into an ``UploadedFile`` (None if absent)."""
    # Form parsing yields Starlette uploads, so match on shape rather than class
    if upload is None or isinstance(upload, str) or not getattr(upload, "filename", None):
        return None
    content = await upload.read()
    mime_type = upload.content_type
    if not mime_type or mime_type == "application/octet-stream":
        mime_type = guess_mime_type(upload.filename)
    return UploadedFile(name=upload.filename, mime_type=mime_type, content=content)


def submission_to_dict(record: Submission, service: Optional[SubmissionService] = None) -> dict:
    """Serialize a submission in the shape the client screens read.

    When *service* is given, adds advisory window fields computed by the
    same guard that enforces them.
    """
    ref = record.file_ref
    data = {
        "_id": record.id,
        "ownerId": record.owner_id,
        "title": record.title,
        "author": record.author,
        "adviser": record.adviser,
        "abstract": record.abstract,
        "status": record.status.value,
        "submissionType": record.submission_type.value,
        "keywords": list(record.keywords),
        "coAuthors": list(record.co_authors),
        "fileName": ref.name if ref else None,
        "fileType": ref.mime_type if ref else None,
        "facultyComment": record.faculty_comment,
        "createdAt": to_iso(record.created_at),
        "revisionCount": record.revision_count,
        "reviewedAt": to_iso(record.reviewed_at),
    }
    if service is not None:
        guard = service.guard
        data["reviseSecondsRemaining"] = guard.seconds_remaining(record, WindowAction.REVISE)
        data["deleteSecondsRemaining"] = guard.seconds_remaining(record, WindowAction.DELETE)
    return data
