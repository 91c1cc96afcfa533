"""Submission data model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from researchhub.errors import ValidationFailed
from researchhub.utils.clock import utc_now
from researchhub.utils.text import clean_text, normalize_keywords


class Status(str, Enum):
    """Review status of a submission."""

    PENDING = "pending"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: Any) -> "Status":
        """Parse a status string, raising ``ValidationFailed`` on unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationFailed(f"Unknown status: {value!r}", field="status") from None


class SubmissionType(str, Enum):
    """Whether the attached document is a draft or the final manuscript."""

    DRAFT = "draft"
    FINAL = "final"

    @classmethod
    def parse(cls, value: Any) -> "SubmissionType":
        """Parse a type string, raising ``ValidationFailed`` on unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationFailed(
                f"Unknown submission type: {value!r}", field="submissionType"
            ) from None


@dataclass(frozen=True)
class FileRef:
    """Reference to a stored document."""

    name: str
    storage_path: str
    mime_type: str
    size: int = 0


@dataclass
class UploadedFile:
    """A file received from the caller, not yet stored."""

    name: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(eq=False)
class Submission:
    """One research item and its review state.

    Keyword order is kept for display but ignored by ``==``.
    """

    id: str
    owner_id: str
    title: str
    author: str
    abstract: str = ""
    adviser: Optional[str] = None
    status: Status = Status.PENDING
    submission_type: SubmissionType = SubmissionType.DRAFT
    keywords: list[str] = field(default_factory=list)
    co_authors: list[str] = field(default_factory=list)
    file_ref: Optional[FileRef] = None
    faculty_comment: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    revision_count: int = 0

    # Set by the reviewer action
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    @property
    def is_approved(self) -> bool:
        return self.status is Status.APPROVED

    def _comparable(self) -> tuple:
        return (
            self.id,
            self.owner_id,
            self.title,
            self.author,
            self.abstract,
            self.adviser,
            self.status,
            self.submission_type,
            frozenset(self.keywords),
            tuple(self.co_authors),
            self.file_ref,
            self.faculty_comment,
            self.created_at,
            self.revision_count,
            self.reviewed_by,
            self.reviewed_at,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Submission):
            return NotImplemented
        return self._comparable() == other._comparable()

    __hash__ = None  # type: ignore[assignment]


@dataclass
class SubmissionPatch:
    """Partial update payload for a revision.

    ``None`` means "not supplied" for every field. Empty strings for
    title/adviser/abstract are also treated as not supplied by the
    merge policy.
    """

    title: Optional[str] = None
    adviser: Optional[str] = None
    abstract: Optional[str] = None
    keywords: Optional[list[str]] = None
    submission_type: Optional[SubmissionType] = None
    file_ref: Optional[FileRef] = None

    @classmethod
    def from_form(
        cls,
        title: Optional[str] = None,
        adviser: Optional[str] = None,
        abstract: Optional[str] = None,
        keywords: Any = None,
        submission_type: Optional[str] = None,
    ) -> "SubmissionPatch":
        """Build a patch from raw form or JSON values.

        Keywords may be a comma-delimited string or a list of strings.
        An empty submission type is treated as not supplied.
        """
        return cls(
            title=clean_text(title) or None,
            adviser=clean_text(adviser) or None,
            abstract=(abstract or "").strip() or None,
            keywords=None if keywords is None else normalize_keywords(keywords),
            submission_type=(
                SubmissionType.parse(submission_type) if submission_type else None
            ),
        )
