from datetime import timedelta

import pytest

from classlab import errors
from classlab.common import utcnow
from classlab.participation import enrollment as enrollments
from classlab.participation.models import ScopeType

from conftest import insert_assignment, insert_contest, insert_problem


async def test_join_is_idempotent(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)])

    first = await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1", "Student One")
    second = await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1", "Student One")

    assert first["enrollment_id"] == second["enrollment_id"]
    assert first["joined_at"] is None
    assert await db.enrollments.count_documents({"student_id": "S1"}) == 1


async def test_join_before_start_is_rejected_without_enrollment(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)], starts_in_minutes=30)

    with pytest.raises(errors.StateConflict) as exc:
        await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1")

    assert exc.value.reason == "NotYetOpen"
    assert await db.enrollments.count_documents({}) == 0


async def test_join_after_end_is_rejected_without_enrollment(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)], starts_in_minutes=-120, duration_minutes=60)

    with pytest.raises(errors.StateConflict) as exc:
        await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1")

    assert exc.value.reason == "AlreadyEnded"
    assert await db.enrollments.count_documents({}) == 0


async def test_rejoin_after_end_is_rejected(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)], starts_in_minutes=-120, duration_minutes=60)
    await enrollments.join(
        db, ScopeType.CONTEST, contest["contest_id"], "S1", now=utcnow() - timedelta(minutes=100)
    )

    with pytest.raises(errors.StateConflict) as exc:
        await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1")

    assert exc.value.reason == "AlreadyEnded"
    assert await db.enrollments.count_documents({}) == 1


async def test_draft_contest_is_invisible(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)], published=False)

    with pytest.raises(errors.NotFound):
        await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1")


async def test_unknown_scope(db):
    with pytest.raises(errors.NotFound):
        await enrollments.join(db, ScopeType.ASSIGNMENT, "ASG_MISSING", "S1")


async def test_start_without_join(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)])

    with pytest.raises(errors.StateConflict) as exc:
        await enrollments.start(db, contest["contest_id"], "S1")
    assert exc.value.reason == "NotEnrolled"


async def test_second_start_keeps_original_joined_at(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)])
    await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1")

    first_now = utcnow() - timedelta(minutes=2)
    started = await enrollments.start(db, contest["contest_id"], "S1", now=first_now)
    restarted = await enrollments.start(db, contest["contest_id"], "S1")

    assert started["joined_at"] is not None
    assert restarted["joined_at"] == started["joined_at"]


async def test_assignment_join_starts_immediately(db):
    problem_id = await insert_problem(db)
    assignment = await insert_assignment(db, [(problem_id, None)])

    enrollment = await enrollments.join(db, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1")

    assert enrollment["joined_at"] is not None
    assert enrollment["scope_type"] == "assignment"
    assert enrollment["submission_seq"] == 0
