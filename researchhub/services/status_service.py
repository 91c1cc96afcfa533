"""Status transition engine and submission-type derivation."""

import logging
from dataclasses import replace
from typing import Optional

from researchhub.errors import InvalidTransition, SubmissionLocked
from researchhub.models.submission import Status, Submission, SubmissionType

logger = logging.getLogger(__name__)

# Legal status changes. approved/rejected are terminal.
TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.PENDING: frozenset({Status.REVIEWING, Status.APPROVED, Status.REJECTED}),
    Status.REVIEWING: frozenset({Status.APPROVED, Status.REJECTED}),
    Status.APPROVED: frozenset(),
    Status.REJECTED: frozenset(),
}

# Statuses in which the owner may still revise or delete
OWNER_MUTABLE: frozenset[Status] = frozenset({Status.PENDING, Status.REVIEWING})

_missing = set(Status) - set(TRANSITIONS)
if _missing:
    raise RuntimeError(f"Transition table is missing statuses: {sorted(s.value for s in _missing)}")


def is_terminal(status: Status) -> bool:
    return not TRANSITIONS[status]


def is_owner_mutable(status: Status) -> bool:
    return status in OWNER_MUTABLE


def can_transition(src: Status, dst: Status) -> bool:
    return dst in TRANSITIONS[src]


def check_owner_mutable(record: Submission) -> None:
    """Raise ``SubmissionLocked`` when the record is in a terminal status."""
    if not is_owner_mutable(record.status):
        logger.info("Owner action rejected for %s: status is %s", record.id, record.status.value)
        raise SubmissionLocked(submission_id=record.id)


def transition(record: Submission, dst: Status) -> Submission:
    """Return a copy of ``record`` moved to ``dst``.

    ``submission_type`` is left untouched: the default derivation runs
    only at creation.

    Raises:
        InvalidTransition: ``dst`` is not reachable from the current status
    """
    if not can_transition(record.status, dst):
        raise InvalidTransition(
            f"Cannot move submission from {record.status.value} to {dst.value}.",
            submission_id=record.id,
        )
    return replace(record, status=dst)


def derive_submission_type(
    status: Status,
    explicit: Optional[SubmissionType] = None,
) -> SubmissionType:
    """Explicit type wins; otherwise ``final`` for approved, ``draft`` for the rest."""
    if explicit is not None:
        return explicit
    if status is Status.APPROVED:
        return SubmissionType.FINAL
    return SubmissionType.DRAFT
