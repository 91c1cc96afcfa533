import pytest

from conftest import T0
from researchhub.errors import ValidationFailed
from researchhub.models.submission import Status, Submission, SubmissionType


def _record(**kwargs) -> Submission:
    params = {
        "id": "s1",
        "owner_id": "student-1",
        "title": "Rice",
        "author": "student-1",
        "created_at": T0,
    }
    params.update(kwargs)
    return Submission(**params)


def test_keyword_order_is_ignored_by_equality() -> None:
    assert _record(keywords=["a", "b"]) == _record(keywords=["b", "a"])


def test_different_keyword_sets_are_not_equal() -> None:
    assert _record(keywords=["a", "b"]) != _record(keywords=["a", "c"])
    assert _record(keywords=["a", "b"]) != _record(keywords=["a"])


def test_other_fields_still_count_for_equality() -> None:
    assert _record(title="Rice") != _record(title="Corn")
    assert _record(status=Status.APPROVED) != _record()


def test_records_are_unhashable() -> None:
    with pytest.raises(TypeError):
        hash(_record())


def test_enum_parse() -> None:
    assert Status.parse(" Approved ") is Status.APPROVED
    assert SubmissionType.parse("final") is SubmissionType.FINAL
    with pytest.raises(ValidationFailed):
        Status.parse("archived")
