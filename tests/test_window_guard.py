from datetime import timedelta

import pytest

from conftest import T0, FakeClock
from researchhub.errors import DeleteWindowExpired, EditWindowExpired
from researchhub.models.submission import Submission
from researchhub.services.window_guard import TimeWindowGuard, WindowAction, is_within_window


def _record() -> Submission:
    return Submission(id="s1", owner_id="u1", title="T", author="u1", created_at=T0)


def test_inclusive_boundary() -> None:
    assert is_within_window(T0, T0 + timedelta(seconds=300), 300)
    assert not is_within_window(T0, T0 + timedelta(seconds=300, milliseconds=1), 300)


def test_now_before_created_at_is_inside() -> None:
    assert is_within_window(T0, T0 - timedelta(seconds=5), 300)


def test_monotonic_in_now() -> None:
    results = [
        is_within_window(T0, T0 + timedelta(seconds=s), 300)
        for s in range(-10, 1000, 7)
    ]
    # Once false, never true again for later times
    first_false = results.index(False)
    assert all(results[:first_false])
    assert not any(results[first_false:])


def test_guard_uses_separate_windows() -> None:
    clock = FakeClock()
    guard = TimeWindowGuard(revise_window_seconds=60, delete_window_seconds=300, clock=clock)
    record = _record()

    clock.set_elapsed(120)
    assert not guard.allows(record, WindowAction.REVISE)
    assert guard.allows(record, WindowAction.DELETE)

    with pytest.raises(EditWindowExpired):
        guard.check_revise(record)
    guard.check_delete(record)


def test_guard_reads_clock_on_every_call() -> None:
    clock = FakeClock()
    guard = TimeWindowGuard(clock=clock)
    record = _record()

    clock.set_elapsed(299)
    guard.check_revise(record)
    clock.set_elapsed(301)
    with pytest.raises(EditWindowExpired):
        guard.check_revise(record)
    with pytest.raises(DeleteWindowExpired) as exc_info:
        guard.check_delete(record)
    assert exc_info.value.submission_id == "s1"


def test_seconds_remaining() -> None:
    clock = FakeClock()
    guard = TimeWindowGuard(clock=clock)
    record = _record()

    clock.set_elapsed(100)
    assert guard.seconds_remaining(record, WindowAction.REVISE) == 200
    clock.set_elapsed(1000)
    assert guard.seconds_remaining(record, WindowAction.DELETE) == 0


def test_negative_window_rejected() -> None:
    with pytest.raises(ValueError):
        TimeWindowGuard(revise_window_seconds=-1)
