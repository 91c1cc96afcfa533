"""Reviewer routes: review queue and decisions."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from researchhub.api.helpers import (
    Identity,
    get_identity,
    get_service,
    require_reviewer,
    submission_to_dict,
)
from researchhub.models.submission import Status, SubmissionType
from researchhub.services.submission_service import SubmissionService

router = APIRouter(prefix="/faculty")


class ReviewPayload(BaseModel):
    """Request body for a review decision."""

    decision: str
    comment: Optional[str] = None
    submissionType: Optional[str] = None


@router.get("/student-submissions")
async def student_submissions(
    status: Optional[str] = Query(None),
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Review queue across all owners."""
    require_reviewer(identity)
    records = service.list_for_review(Status.parse(status) if status else None)
    return JSONResponse([submission_to_dict(r) for r in records])


@router.post("/start-review/{submission_id}")
async def start_review(
    submission_id: str,
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Move a pending submission to reviewing."""
    require_reviewer(identity)
    record = service.start_review(identity.user_id, submission_id)
    return JSONResponse(submission_to_dict(record))


@router.put("/review/{submission_id}")
async def review(
    submission_id: str,
    body: ReviewPayload,
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Approve or reject a submission with an optional comment."""
    require_reviewer(identity)
    record = service.review_submission(
        identity.user_id,
        submission_id,
        Status.parse(body.decision),
        comment=body.comment,
        submission_type=SubmissionType.parse(body.submissionType) if body.submissionType else None,
    )
    return JSONResponse(submission_to_dict(record))
