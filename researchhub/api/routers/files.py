"""File routes: access plans, authenticated streams, and signed downloads."""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, JSONResponse

from researchhub.api.helpers import Identity, get_identity, get_service
from researchhub.services.storage_service import guess_mime_type
from researchhub.services.submission_service import SubmissionService

router = APIRouter()


@router.get("/research/file/{submission_id}/access")
@router.get("/research/file/{submission_id}/signed")
async def file_access(
    submission_id: str,
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Return the access plan for a submission's file.

    Approved files get a signed link; everything else points at the
    authenticated stream.
    """
    plan = service.resolve_file_access(
        identity.user_id, submission_id, is_reviewer=identity.is_reviewer
    )
    return JSONResponse(plan.to_dict())


@router.get("/student/file/{submission_id}")
async def stream_file(
    submission_id: str,
    identity: Identity = Depends(get_identity),
    service: SubmissionService = Depends(get_service),
):
    """Stream a file to an authenticated owner or reviewer."""
    path, ref = service.open_owned_file(
        identity.user_id, submission_id, is_reviewer=identity.is_reviewer
    )
    return FileResponse(
        path,
        media_type=ref.mime_type,
        filename=ref.name,
        headers={"Cache-Control": "private, no-store"},
    )


@router.get("/files/signed/{token}")
async def signed_download(
    token: str,
    service: SubmissionService = Depends(get_service),
):
    """Serve a file through a capability token; no session needed."""
    path = service.open_signed_file(token)
    media_type = guess_mime_type(path.name)
    return FileResponse(
        path,
        media_type=media_type,
        headers={"Cache-Control": "private, no-store"},
    )
