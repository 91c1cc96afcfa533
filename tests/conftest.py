from datetime import datetime, timedelta, timezone

import pytest

from researchhub.database.repository import SubmissionRepository
from researchhub.models.submission import UploadedFile
from researchhub.services.access_service import FileAccessResolver, UrlSigner
from researchhub.services.storage_service import PDF_MIME, FileStorage
from researchhub.services.submission_service import SubmissionService
from researchhub.services.window_guard import TimeWindowGuard

T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock: ``clock()`` returns ``clock.now``."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set_elapsed(self, seconds: float) -> None:
        self.now = T0 + timedelta(seconds=seconds)

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def pdf_upload(name: str = "thesis.pdf", content: bytes = b"%PDF-1.4 test") -> UploadedFile:
    return UploadedFile(name=name, mime_type=PDF_MIME, content=content)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo(tmp_path) -> SubmissionRepository:
    return SubmissionRepository(tmp_path / "test.db")


@pytest.fixture
def storage(tmp_path) -> FileStorage:
    return FileStorage(tmp_path / "uploads")


@pytest.fixture
def signer(clock) -> UrlSigner:
    return UrlSigner("test-secret", ttl_seconds=300, clock=clock)


@pytest.fixture
def service(repo, storage, signer, clock) -> SubmissionService:
    return SubmissionService(
        repo=repo,
        storage=storage,
        guard=TimeWindowGuard(300, 300, clock=clock),
        resolver=FileAccessResolver(signer, base_url="http://test"),
        clock=clock,
    )


@pytest.fixture
def make_submission(service):
    def _make(owner_id: str = "student-1", **kwargs):
        params = {
            "title": "Deep Learning for Rice Disease Detection",
            "abstract": "We study convolutional models.",
            "file": pdf_upload(),
            "adviser": "Dr. Reyes",
            "keywords": "rice, vision",
        }
        params.update(kwargs)
        return service.create_submission(owner_id, **params)

    return _make
