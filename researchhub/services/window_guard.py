"""Time-window guard for owner-initiated revise and delete actions.

The check is authoritative only where the mutation is applied: every
call reads the clock again and compares against the stored creation
timestamp. Client-side countdowns are advisory.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from researchhub.errors import DeleteWindowExpired, EditWindowExpired
from researchhub.models.submission import Submission
from researchhub.utils.clock import Clock, ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_REVISE_WINDOW_SECONDS = 300
DEFAULT_DELETE_WINDOW_SECONDS = 300


class WindowAction(str, Enum):
    """Owner actions gated by a window."""

    REVISE = "revise"
    DELETE = "delete"


def is_within_window(created_at: datetime, now: datetime, window_seconds: float) -> bool:
    """Return True while ``now - created_at <= window_seconds`` (inclusive).

    A ``now`` earlier than ``created_at`` (clock skew) counts as inside.
    """
    elapsed = (ensure_utc(now) - ensure_utc(created_at)).total_seconds()
    return elapsed <= window_seconds


class TimeWindowGuard:
    """Decides whether a revise or delete is still permitted.

    The two windows are configured separately even when their values
    coincide.
    """

    def __init__(
        self,
        revise_window_seconds: float = DEFAULT_REVISE_WINDOW_SECONDS,
        delete_window_seconds: float = DEFAULT_DELETE_WINDOW_SECONDS,
        clock: Optional[Clock] = None,
    ):
        """Initialize guard.

        Args:
            revise_window_seconds: Seconds after creation during which revise is allowed
            delete_window_seconds: Seconds after creation during which delete is allowed
            clock: Callable returning the current aware datetime (defaults to UTC now)
        """
        if revise_window_seconds < 0 or delete_window_seconds < 0:
            raise ValueError("Window durations must be non-negative")
        self.revise_window_seconds = revise_window_seconds
        self.delete_window_seconds = delete_window_seconds
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    def window_for(self, action: WindowAction) -> float:
        if action is WindowAction.REVISE:
            return self.revise_window_seconds
        return self.delete_window_seconds

    def allows(self, record: Submission, action: WindowAction) -> bool:
        """Return True if ``action`` is inside its window right now."""
        return is_within_window(record.created_at, self.now(), self.window_for(action))

    def seconds_remaining(self, record: Submission, action: WindowAction) -> float:
        """Seconds left before ``action`` expires (0 once expired). Advisory only."""
        elapsed = (self.now() - ensure_utc(record.created_at)).total_seconds()
        return max(0.0, self.window_for(action) - max(0.0, elapsed))

    def check_revise(self, record: Submission) -> None:
        """Raise ``EditWindowExpired`` if the revise window has closed."""
        if not self.allows(record, WindowAction.REVISE):
            logger.info("Revise rejected for %s: window expired", record.id)
            raise EditWindowExpired(submission_id=record.id)

    def check_delete(self, record: Submission) -> None:
        """Raise ``DeleteWindowExpired`` if the delete window has closed."""
        if not self.allows(record, WindowAction.DELETE):
            logger.info("Delete rejected for %s: window expired", record.id)
            raise DeleteWindowExpired(submission_id=record.id)
