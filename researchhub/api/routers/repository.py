"""Repository routes: browse approved research."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from researchhub.api.helpers import Identity, get_identity, get_service, submission_to_dict
from researchhub.services.submission_service import SubmissionService

router = APIRouter(prefix="/repository")


@router.get("")
async def browse(
    q: Optional[str] = Query(None, description="Search title, adviser, or author"),
    sort: str = Query("latest", description="latest or year"),
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Approved submissions visible to any signed-in user."""
    records = service.list_repository(query=q, sort=sort)
    return JSONResponse({"items": [submission_to_dict(r) for r in records]})


@router.get("/facets")
async def facets(
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Keyword and type counts for repository filters."""
    return JSONResponse(service.repository_facets())
