"""Revision merge policy.

``merge`` is a pure data transform: permission and window checks
happen before it is called.
"""

from dataclasses import dataclass, replace
from typing import Optional

from researchhub.models.submission import FileRef, Submission, SubmissionPatch
from researchhub.utils.text import normalize_keywords


@dataclass(frozen=True)
class MergeResult:
    """Merged record plus the file reference it replaced, if any.

    The caller owns cleanup of ``orphaned_file``.
    """

    record: Submission
    orphaned_file: Optional[FileRef] = None


def _non_empty(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def merge(existing: Submission, patch: SubmissionPatch) -> MergeResult:
    """Apply ``patch`` to ``existing`` and bump ``revision_count`` by one.

    Args:
        existing: Current stored record
        patch: Partial update; ``None`` fields are left unchanged

    Returns:
        MergeResult with the new record and the orphaned file reference
    """
    changes: dict = {"revision_count": existing.revision_count + 1}

    for name in ("title", "adviser", "abstract"):
        value = _non_empty(getattr(patch, name))
        if value is not None:
            changes[name] = value

    if patch.keywords is not None:
        changes["keywords"] = normalize_keywords(patch.keywords)

    if patch.submission_type is not None:
        changes["submission_type"] = patch.submission_type

    orphaned: Optional[FileRef] = None
    if patch.file_ref is not None:
        changes["file_ref"] = patch.file_ref
        if existing.file_ref is not None and existing.file_ref != patch.file_ref:
            orphaned = existing.file_ref

    return MergeResult(record=replace(existing, **changes), orphaned_file=orphaned)
