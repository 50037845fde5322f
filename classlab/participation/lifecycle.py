"""
Contest / assignment lifecycle

Every state is computed from stored timestamps at read time; nothing here
touches the database. Callers pass `now` so the rules stay deterministic.

    Draft -> Upcoming -> Active -> Completed

A contest is additionally individual: a student's window opens on start()
and lasts duration_minutes, clipped by the contest's own end.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from classlab import errors
from classlab.errors import ConflictReason
from classlab.participation.models import ScopeState, ScopeType


def scope_window(scope_type: ScopeType, scope: dict) -> Tuple[datetime, datetime]:
    """(start, end) of the shared window"""
    if ScopeType(scope_type) == ScopeType.CONTEST:
        start = scope["start_time"]
        end = scope.get("end_time") or start + timedelta(minutes=scope["duration_minutes"])
        return start, end

    start = scope.get("start_time") or scope["created_at"]
    return start, scope["due_date"]


def scope_state(scope_type: ScopeType, scope: dict, now: datetime) -> ScopeState:
    if not scope.get("is_published", False):
        return ScopeState.DRAFT

    start, end = scope_window(scope_type, scope)
    if now < start:
        return ScopeState.UPCOMING
    if now <= end:
        return ScopeState.ACTIVE
    return ScopeState.COMPLETED


def personal_end(contest: dict, enrollment: Optional[dict]) -> Optional[datetime]:
    """joined_at + duration, or None until the student has started"""
    if not enrollment or not enrollment.get("joined_at"):
        return None
    return enrollment["joined_at"] + timedelta(minutes=contest["duration_minutes"])


def student_state(
    scope_type: ScopeType,
    scope: dict,
    enrollment: Optional[dict],
    now: datetime
) -> ScopeState:
    """State of the scope as seen by one student"""
    state = scope_state(scope_type, scope, now)
    if state != ScopeState.ACTIVE:
        return state

    # Not enrolled (or not started) means the student's own window is still ahead
    if not enrollment:
        return ScopeState.UPCOMING

    if ScopeType(scope_type) == ScopeType.ASSIGNMENT:
        return ScopeState.ACTIVE

    end = personal_end(scope, enrollment)
    if end is None:
        return ScopeState.UPCOMING
    if now >= end:
        return ScopeState.COMPLETED
    return ScopeState.ACTIVE

# ==================== COMMAND GUARDS ====================

def _require_open(scope_type: ScopeType, scope: dict, now: datetime) -> None:
    state = scope_state(scope_type, scope, now)
    label = ScopeType(scope_type).value.capitalize()

    if state == ScopeState.DRAFT:
        # Unpublished scopes do not exist as far as students are concerned
        raise errors.NotFound(f"{label} not found")
    if state == ScopeState.UPCOMING:
        raise errors.StateConflict(ConflictReason.NOT_YET_OPEN, f"{label} has not started yet")
    if state == ScopeState.COMPLETED:
        raise errors.StateConflict(ConflictReason.ALREADY_ENDED, f"{label} has already ended")


def check_can_join(scope_type: ScopeType, scope: dict, now: datetime) -> None:
    _require_open(scope_type, scope, now)


def check_can_start(contest: dict, enrollment: Optional[dict], now: datetime) -> None:
    _require_open(ScopeType.CONTEST, contest, now)
    if not enrollment:
        raise errors.StateConflict(ConflictReason.NOT_ENROLLED, "Join the contest before starting it")


def check_can_submit(
    scope_type: ScopeType,
    scope: dict,
    enrollment: Optional[dict],
    now: datetime
) -> None:
    if not enrollment:
        raise errors.StateConflict(ConflictReason.NOT_ENROLLED, "You are not enrolled")

    state = student_state(scope_type, scope, enrollment, now)
    if state == ScopeState.ACTIVE:
        return

    if state == ScopeState.UPCOMING and ScopeType(scope_type) == ScopeType.CONTEST:
        message = "Start the contest before submitting"
    elif state == ScopeState.UPCOMING:
        message = "Submissions are not open yet"
    else:
        message = "Submission window is closed"
    raise errors.StateConflict(ConflictReason.SUBMISSION_WINDOW_CLOSED, message)


def check_schedule_editable(contest: dict, now: datetime) -> None:
    """Schedule and problem list freeze once a published contest has opened"""
    state = scope_state(ScopeType.CONTEST, contest, now)
    if state in (ScopeState.ACTIVE, ScopeState.COMPLETED):
        raise errors.StateConflict(
            ConflictReason.ALREADY_STARTED,
            "Contest has already started; schedule and problems can no longer change"
        )
