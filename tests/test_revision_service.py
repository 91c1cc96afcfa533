from dataclasses import replace

from conftest import T0
from researchhub.models.submission import (
    FileRef,
    Status,
    Submission,
    SubmissionPatch,
    SubmissionType,
)
from researchhub.services.revision_service import merge

OLD_FILE = FileRef(name="v1.pdf", storage_path="u1/aaa_v1.pdf", mime_type="application/pdf", size=10)
NEW_FILE = FileRef(name="v2.pdf", storage_path="u1/bbb_v2.pdf", mime_type="application/pdf", size=12)


def _existing() -> Submission:
    return Submission(
        id="s1",
        owner_id="u1",
        title="Original title",
        author="Ana Cruz",
        abstract="Original abstract",
        adviser="Dr. Reyes",
        status=Status.REVIEWING,
        submission_type=SubmissionType.DRAFT,
        keywords=["rice", "vision"],
        file_ref=OLD_FILE,
        created_at=T0,
        revision_count=2,
    )


def test_empty_patch_only_bumps_revision_count() -> None:
    existing = _existing()
    result = merge(existing, SubmissionPatch())
    assert result.record == replace(existing, revision_count=3)
    assert result.orphaned_file is None


def test_empty_strings_do_not_null_fields() -> None:
    result = merge(_existing(), SubmissionPatch(title="", adviser="   ", abstract=""))
    assert result.record.title == "Original title"
    assert result.record.adviser == "Dr. Reyes"
    assert result.record.abstract == "Original abstract"


def test_text_fields_replaced_when_supplied() -> None:
    result = merge(_existing(), SubmissionPatch(title="New title", abstract="New abstract"))
    assert result.record.title == "New title"
    assert result.record.abstract == "New abstract"
    assert result.record.adviser == "Dr. Reyes"


def test_keywords_fully_replaced_after_normalization() -> None:
    result = merge(_existing(), SubmissionPatch(keywords=["a", "a", "b, c"]))
    assert result.record.keywords == ["a", "b", "c"]


def test_keywords_omitted_are_kept() -> None:
    result = merge(_existing(), SubmissionPatch(title="x"))
    assert result.record.keywords == ["rice", "vision"]


def test_empty_keyword_list_clears_keywords() -> None:
    result = merge(_existing(), SubmissionPatch(keywords=[]))
    assert result.record.keywords == []


def test_submission_type_replaced_directly() -> None:
    result = merge(_existing(), SubmissionPatch(submission_type=SubmissionType.FINAL))
    assert result.record.submission_type is SubmissionType.FINAL


def test_new_file_replaces_and_emits_orphan() -> None:
    result = merge(_existing(), SubmissionPatch(file_ref=NEW_FILE))
    assert result.record.file_ref == NEW_FILE
    assert result.orphaned_file == OLD_FILE


def test_merge_does_not_touch_identity_or_status() -> None:
    existing = _existing()
    record = merge(existing, SubmissionPatch(title="x")).record
    assert record.id == existing.id
    assert record.created_at == existing.created_at
    assert record.status is existing.status
    assert existing.revision_count == 2


def test_patch_from_form() -> None:
    patch = SubmissionPatch.from_form(
        title="  New  ",
        adviser="",
        abstract=None,
        keywords="a, b",
        submission_type="final",
    )
    assert patch.title == "New"
    assert patch.adviser is None
    assert patch.abstract is None
    assert patch.keywords == ["a", "b"]
    assert patch.submission_type is SubmissionType.FINAL
    assert SubmissionPatch.from_form(submission_type="").submission_type is None
