"""FastAPI JSON API for ResearchHub."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from researchhub import __version__
from researchhub.api.routers import faculty, files, repository, student
from researchhub.config import Settings
from researchhub.errors import (
    DeleteWindowExpired,
    EditWindowExpired,
    Forbidden,
    InvalidTransition,
    NoFileAttached,
    NotFound,
    SubmissionError,
    SubmissionLocked,
    ValidationFailed,
)
from researchhub.services.submission_service import SubmissionService

logger = logging.getLogger(__name__)

# HTTP status for each domain error
ERROR_STATUS: dict[type, int] = {
    ValidationFailed: 422,
    NotFound: 404,
    NoFileAttached: 404,
    Forbidden: 403,
    EditWindowExpired: 403,
    DeleteWindowExpired: 403,
    SubmissionLocked: 409,
    InvalidTransition: 409,
}


def status_for(error: SubmissionError) -> int:
    for cls in type(error).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400


def create_app(service: Optional[SubmissionService] = None) -> FastAPI:
    """Build the API.

    Args:
        service: Pre-built service; when omitted it is wired from
            ``Settings.load()`` at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize services on startup."""
        if getattr(app.state, "service", None) is None:
            settings = Settings.load()
            app.state.service = SubmissionService.from_settings(settings)
            logger.info("Using database %s", settings.db_path)
        yield

    app = FastAPI(title="ResearchHub", version=__version__, lifespan=lifespan)
    app.state.service = service

    @app.exception_handler(SubmissionError)
    async def submission_error_handler(request: Request, exc: SubmissionError):
        return JSONResponse(exc.to_dict(), status_code=status_for(exc))

    @app.get("/health")
    async def health():
        return {"ok": True, "version": __version__}

    app.include_router(student.router)
    app.include_router(files.router)
    app.include_router(faculty.router)
    app.include_router(repository.router)
    return app


app = create_app()
