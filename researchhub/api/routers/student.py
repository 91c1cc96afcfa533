"""Owner routes: list, upload, revise, delete, and stats."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from researchhub.api.helpers import (
    Identity,
    get_identity,
    get_service,
    submission_to_dict,
    to_uploaded_file,
)
from researchhub.errors import ValidationFailed
from researchhub.models.submission import Status, SubmissionPatch, SubmissionType
from researchhub.services.submission_service import SubmissionService

router = APIRouter(prefix="/student")


class RevisePayload(BaseModel):
    """JSON body for a revision without a replacement file."""

    title: Optional[str] = None
    adviser: Optional[str] = None
    abstract: Optional[str] = None
    keywords: Any = None
    submissionType: Optional[str] = None


# ============================================================================
# Listing
# ============================================================================


@router.get("/my-research")
async def my_research(
    status: Optional[str] = Query(None, description="pending, reviewing, approved, rejected"),
    q: Optional[str] = Query(None, description="Search title, adviser, or author"),
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """List the caller's submissions, newest first."""
    records = service.list_my_submissions(
        identity.user_id,
        status=Status.parse(status) if status else None,
        query=q,
    )
    return JSONResponse([submission_to_dict(r, service) for r in records])


@router.get("/stats")
async def my_stats(
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Counts per status for the caller's submissions."""
    return JSONResponse(service.get_status_counts(identity.user_id))


@router.get("/research/{submission_id}")
async def my_submission(
    submission_id: str,
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Return one submission visible to the caller."""
    record = service.get_submission(
        identity.user_id, submission_id, is_reviewer=identity.is_reviewer
    )
    return JSONResponse(submission_to_dict(record, service))


# ============================================================================
# Upload / Revise / Delete
# ============================================================================


@router.post("/upload", status_code=201)
async def upload(
    title: str = Form(""),
    abstract: str = Form(""),
    adviser: Optional[str] = Form(None),
    submissionType: Optional[str] = Form(None),
    keywords: Optional[str] = Form(None),
    authors: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Create a submission from a multipart form."""
    record = service.create_submission(
        identity.user_id,
        title=title,
        abstract=abstract,
        file=await to_uploaded_file(file),
        adviser=adviser,
        submission_type=SubmissionType.parse(submissionType) if submissionType else None,
        keywords=keywords,
        author=author,
        co_authors=authors,
    )
    return JSONResponse(submission_to_dict(record, service), status_code=201)


@router.put("/revise/{submission_id}")
async def revise(
    submission_id: str,
    request: Request,
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Revise a submission from a multipart form or a JSON body.

    Multipart requests may carry a replacement ``file``.
    """
    content_type = request.headers.get("content-type", "")
    upload = None
    if content_type.startswith("application/json"):
        try:
            body = RevisePayload.model_validate(await request.json())
        except (ValueError, ValidationError):
            raise ValidationFailed(
                "The request body must be a JSON object of revision fields.",
                field="body",
                submission_id=submission_id,
            ) from None
        values = body.model_dump()
    else:
        form = await request.form()
        values = {
            key: form.get(key)
            for key in ("title", "adviser", "abstract", "keywords", "submissionType")
        }
        upload = await to_uploaded_file(form.get("file"))

    patch = SubmissionPatch.from_form(
        title=values.get("title"),
        adviser=values.get("adviser"),
        abstract=values.get("abstract"),
        keywords=values.get("keywords"),
        submission_type=values.get("submissionType"),
    )
    record = service.revise_submission(identity.user_id, submission_id, patch, file=upload)
    return JSONResponse(submission_to_dict(record, service))


@router.delete("/delete/{submission_id}")
async def delete(
    submission_id: str,
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Hard-delete a submission inside the delete window."""
    service.delete_submission(identity.user_id, submission_id)
    return JSONResponse({"ok": True, "_id": submission_id})
