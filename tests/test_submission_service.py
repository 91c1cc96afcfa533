import logging

import pytest

from conftest import T0, pdf_upload
from researchhub.config import DEFAULT_SIGNING_SECRET, Settings
from researchhub.errors import (
    DeleteWindowExpired,
    EditWindowExpired,
    Forbidden,
    InvalidTransition,
    NoFileAttached,
    NotFound,
    SubmissionLocked,
    ValidationFailed,
)
from researchhub.models.submission import Status, SubmissionPatch, SubmissionType
from researchhub.services.access_service import AccessKind, UrlSigner
from researchhub.services.submission_service import SubmissionService


# ============================================================================
# Create
# ============================================================================


def test_create_starts_pending(make_submission, repo, clock) -> None:
    record = make_submission()
    assert record.status is Status.PENDING
    assert record.revision_count == 0
    assert record.created_at == T0
    assert record.submission_type is SubmissionType.DRAFT
    assert record.keywords == ["rice", "vision"]
    assert record.author == "student-1"
    assert repo.find_by_id(record.id) == record


def test_create_keeps_explicit_type(make_submission) -> None:
    record = make_submission(submission_type=SubmissionType.FINAL, author="Ana Cruz")
    assert record.submission_type is SubmissionType.FINAL
    assert record.author == "Ana Cruz"


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"title": "  "}, "title"),
        ({"abstract": ""}, "abstract"),
        ({"file": None}, "file"),
    ],
)
def test_create_validation(make_submission, repo, overrides, field) -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        make_submission(**overrides)
    assert exc_info.value.field == field
    assert repo.find_by_owner("student-1") == []


def test_list_my_submissions_only_returns_own(make_submission, service) -> None:
    mine = make_submission("student-1")
    make_submission("student-2")
    assert [r.id for r in service.list_my_submissions("student-1")] == [mine.id]


# ============================================================================
# Revise
# ============================================================================


def test_revise_inside_window_succeeds(make_submission, service, clock) -> None:
    record = make_submission()
    clock.set_elapsed(299)
    revised = service.revise_submission("student-1", record.id, SubmissionPatch(title="Better title"))
    assert revised.title == "Better title"
    assert revised.revision_count == 1
    assert service.repo.find_by_id(record.id).title == "Better title"


def test_revise_after_window_fails(make_submission, service, clock) -> None:
    record = make_submission()
    clock.set_elapsed(301)
    with pytest.raises(EditWindowExpired):
        service.revise_submission("student-1", record.id, SubmissionPatch(title="Too late"))
    stored = service.repo.find_by_id(record.id)
    assert stored.title == record.title
    assert stored.revision_count == 0


def test_revise_approved_inside_window_is_locked(make_submission, service, clock) -> None:
    record = make_submission()
    service.review_submission("faculty-1", record.id, Status.APPROVED)
    clock.set_elapsed(10)
    with pytest.raises(SubmissionLocked):
        service.revise_submission("student-1", record.id, SubmissionPatch(title="x"))


def test_locked_reported_before_expired_window(make_submission, service, clock) -> None:
    record = make_submission()
    service.review_submission("faculty-1", record.id, Status.REJECTED)
    clock.set_elapsed(1000)
    with pytest.raises(SubmissionLocked):
        service.revise_submission("student-1", record.id, SubmissionPatch())
    with pytest.raises(SubmissionLocked):
        service.delete_submission("student-1", record.id)


def test_revise_reviewing_is_allowed(make_submission, service, clock) -> None:
    record = make_submission()
    service.start_review("faculty-1", record.id)
    clock.set_elapsed(30)
    revised = service.revise_submission("student-1", record.id, SubmissionPatch(abstract="Updated"))
    assert revised.status is Status.REVIEWING
    assert revised.abstract == "Updated"


def test_revise_mixed_keyword_input(make_submission, service) -> None:
    record = make_submission()
    patch = SubmissionPatch.from_form(keywords=["a", "a", "b, c"])
    revised = service.revise_submission("student-1", record.id, patch)
    assert revised.keywords == ["a", "b", "c"]
    assert service.repo.find_by_id(record.id).keywords == ["a", "b", "c"]


def test_revise_empty_patch(make_submission, service) -> None:
    record = make_submission()
    revised = service.revise_submission("student-1", record.id, SubmissionPatch())
    assert revised.revision_count == record.revision_count + 1
    assert revised.title == record.title
    assert revised.keywords == record.keywords
    assert revised.file_ref == record.file_ref


def test_revise_replaces_file_and_removes_old(make_submission, service, storage) -> None:
    record = make_submission()
    old_path = storage.path_for(record.file_ref.storage_path)

    revised = service.revise_submission(
        "student-1",
        record.id,
        SubmissionPatch(),
        file=pdf_upload("v2.pdf", b"%PDF-1.4 second"),
    )
    assert revised.file_ref.name == "v2.pdf"
    assert storage.path_for(revised.file_ref.storage_path).read_bytes() == b"%PDF-1.4 second"
    assert not old_path.exists()


def test_revise_by_non_owner_forbidden(make_submission, service) -> None:
    record = make_submission()
    with pytest.raises(Forbidden):
        service.revise_submission("student-2", record.id, SubmissionPatch(title="x"))


def test_revise_unknown_id(service) -> None:
    with pytest.raises(NotFound):
        service.revise_submission("student-1", "nope", SubmissionPatch())


def test_revise_with_bad_file_writes_nothing(make_submission, service, storage) -> None:
    record = make_submission()
    with pytest.raises(ValidationFailed):
        service.revise_submission(
            "student-1", record.id, SubmissionPatch(title="x"), file=pdf_upload(content=b"")
        )
    stored = service.repo.find_by_id(record.id)
    assert stored.title == record.title
    assert stored.revision_count == 0


# ============================================================================
# Delete
# ============================================================================


def test_delete_on_boundary_succeeds(make_submission, service, storage, clock) -> None:
    record = make_submission()
    path = storage.path_for(record.file_ref.storage_path)
    clock.set_elapsed(300)
    service.delete_submission("student-1", record.id)
    assert service.repo.find_by_id(record.id) is None
    assert not path.exists()


def test_delete_just_after_boundary_fails(make_submission, service, clock) -> None:
    record = make_submission()
    clock.set_elapsed(300.001)
    with pytest.raises(DeleteWindowExpired):
        service.delete_submission("student-1", record.id)
    assert service.repo.find_by_id(record.id) is not None


def test_delete_by_non_owner_forbidden(make_submission, service) -> None:
    record = make_submission()
    with pytest.raises(Forbidden):
        service.delete_submission("student-2", record.id)


def test_delete_unknown_id(service) -> None:
    with pytest.raises(NotFound):
        service.delete_submission("student-1", "nope")


def test_revise_and_delete_each_check_window_independently(make_submission, service, clock) -> None:
    record = make_submission()
    clock.set_elapsed(250)
    service.revise_submission("student-1", record.id, SubmissionPatch(title="x"))
    clock.set_elapsed(350)
    with pytest.raises(DeleteWindowExpired):
        service.delete_submission("student-1", record.id)


# ============================================================================
# Review
# ============================================================================


def test_review_sets_comment_and_keeps_type(make_submission, service, clock) -> None:
    record = make_submission()
    clock.set_elapsed(3600)
    reviewed = service.review_submission(
        "faculty-1", record.id, Status.APPROVED, comment="  Well done  "
    )
    assert reviewed.status is Status.APPROVED
    assert reviewed.faculty_comment == "Well done"
    assert reviewed.reviewed_by == "faculty-1"
    assert reviewed.reviewed_at == clock.now
    assert reviewed.submission_type is SubmissionType.DRAFT


def test_review_rejects_non_decision(make_submission, service) -> None:
    record = make_submission()
    with pytest.raises(ValidationFailed):
        service.review_submission("faculty-1", record.id, Status.REVIEWING)


def test_review_terminal_is_invalid(make_submission, service) -> None:
    record = make_submission()
    service.review_submission("faculty-1", record.id, Status.REJECTED)
    with pytest.raises(InvalidTransition):
        service.review_submission("faculty-1", record.id, Status.APPROVED)


def test_review_of_vanished_record_is_not_found(make_submission, service, repo, monkeypatch) -> None:
    record = make_submission()
    update = repo.update

    # The row disappears between the service's read and its write
    def delete_then_update(changed):
        repo.delete(changed.id)
        return update(changed)

    monkeypatch.setattr(repo, "update", delete_then_update)
    with pytest.raises(NotFound):
        service.review_submission("faculty-1", record.id, Status.APPROVED)
    assert repo.find_by_id(record.id) is None


def test_start_review_of_vanished_record_is_not_found(make_submission, service, repo, monkeypatch) -> None:
    record = make_submission()
    monkeypatch.setattr(repo, "update", lambda changed: False)
    with pytest.raises(NotFound):
        service.start_review("faculty-1", record.id)


def test_status_counts(make_submission, service) -> None:
    a = make_submission()
    make_submission()
    service.review_submission("faculty-1", a.id, Status.APPROVED)
    counts = service.get_status_counts("student-1")
    assert counts["approved"] == 1
    assert counts["pending"] == 1
    assert counts["total"] == 2


# ============================================================================
# File access
# ============================================================================


def test_file_access_follows_status(make_submission, service) -> None:
    record = make_submission()

    plan = service.resolve_file_access("student-1", record.id)
    assert plan.kind is AccessKind.AUTHENTICATED_STREAM
    assert plan.requires_session is True

    with pytest.raises(Forbidden):
        service.resolve_file_access("student-2", record.id)
    assert service.resolve_file_access("faculty-1", record.id, is_reviewer=True).requires_session

    service.review_submission("faculty-1", record.id, Status.APPROVED)
    plan = service.resolve_file_access("student-2", record.id)
    assert plan.kind is AccessKind.SIGNED_URL
    assert plan.requires_session is False


def test_signed_link_serves_file(make_submission, service) -> None:
    record = make_submission()
    service.review_submission("faculty-1", record.id, Status.APPROVED)
    plan = service.resolve_file_access("anyone", record.id)
    token = plan.url.rsplit("/", 1)[-1]
    assert service.open_signed_file(token).read_bytes() == b"%PDF-1.4 test"


def test_file_access_without_file(make_submission, service) -> None:
    record = make_submission()
    service.storage.discard(record.file_ref)
    with service.repo._connection() as conn:
        conn.execute("UPDATE submissions SET file_path = NULL WHERE id = ?", (record.id,))
        conn.commit()
    with pytest.raises(NoFileAttached):
        service.resolve_file_access("student-1", record.id)
    with pytest.raises(NoFileAttached):
        service.open_owned_file("student-1", record.id)


def test_open_owned_file(make_submission, service) -> None:
    record = make_submission()
    path, ref = service.open_owned_file("student-1", record.id)
    assert path.read_bytes() == b"%PDF-1.4 test"
    assert ref == record.file_ref
    with pytest.raises(Forbidden):
        service.open_owned_file("student-2", record.id)


def test_get_submission_visibility(make_submission, service) -> None:
    record = make_submission()
    assert service.get_submission("student-1", record.id).id == record.id
    with pytest.raises(Forbidden):
        service.get_submission("student-2", record.id)
    service.review_submission("faculty-1", record.id, Status.APPROVED)
    assert service.get_submission("student-2", record.id).is_approved


# ============================================================================
# Repository
# ============================================================================


def test_repository_lists_only_approved(make_submission, service, clock) -> None:
    rice = make_submission(title="Rice Detection")
    clock.advance(60)
    corn = make_submission("student-2", title="Corn Yield", keywords="corn, vision")
    clock.advance(60)
    make_submission(title="Pending Work")
    service.review_submission("faculty-1", rice.id, Status.APPROVED)
    service.review_submission("faculty-1", corn.id, Status.APPROVED)

    assert [r.id for r in service.list_repository()] == [corn.id, rice.id]
    assert [r.id for r in service.list_repository(query="RICE")] == [rice.id]
    assert [r.id for r in service.list_repository(sort="year")] == [corn.id, rice.id]

    facets = service.repository_facets()
    assert facets["keywords"][0] == {"keyword": "vision", "count": 2}
    assert facets["submissionTypes"] == [{"type": "draft", "count": 2}]


def test_repository_rejects_unknown_sort(service) -> None:
    with pytest.raises(ValidationFailed) as exc:
        service.list_repository(sort="random")
    assert exc.value.field == "sort"


# ============================================================================
# Wiring
# ============================================================================


def _settings(tmp_path, **kwargs) -> Settings:
    return Settings(
        base_dir=tmp_path,
        db_path=tmp_path / "hub.db",
        storage_dir=tmp_path / "uploads",
        **kwargs,
    )


def _approved(service):
    record = service.create_submission("student-1", title="T", abstract="A", file=pdf_upload())
    return service.review_submission("faculty-1", record.id, Status.APPROVED)


def test_placeholder_secret_is_replaced(tmp_path, clock, caplog) -> None:
    with caplog.at_level(logging.WARNING):
        service = SubmissionService.from_settings(_settings(tmp_path), clock=clock)
    assert "signing_secret" in caplog.text

    record = _approved(service)
    forged, _ = UrlSigner(DEFAULT_SIGNING_SECRET, clock=clock).sign(record.file_ref.storage_path)
    with pytest.raises(Forbidden):
        service.open_signed_file(forged)

    token = service.resolve_file_access("anyone", record.id).url.rsplit("/", 1)[-1]
    assert service.open_signed_file(token).is_file()


def test_configured_secret_is_used(tmp_path, clock) -> None:
    service = SubmissionService.from_settings(
        _settings(tmp_path, signing_secret="s3cret"), clock=clock
    )
    record = _approved(service)
    token, _ = UrlSigner("s3cret", clock=clock).sign(record.file_ref.storage_path)
    assert service.open_signed_file(token).is_file()
