from datetime import timedelta

import pytest

from classlab import errors
from classlab.common import utcnow
from classlab.judge.grader import GradeResult
from classlab.participation import enrollment as enrollments
from classlab.participation import tracker
from classlab.participation.models import ScopeType, SubmissionStatus

from conftest import insert_assignment, insert_contest, insert_problem


def grade(status, passed=1, total=1):
    return GradeResult(
        status=status,
        passed_tests=passed,
        total_tests=total,
        message="graded",
        testcase_digest="abc123"
    )


def rec(problem_id, status, seq):
    return {"problem_id": problem_id, "status": status, "seq": seq}

# ==================== PURE DERIVATIONS ====================

def test_effective_status_without_records():
    assert tracker.effective_status([]) == SubmissionStatus.NOT_ATTEMPTED


def test_effective_status_any_pass_wins():
    records = [rec("P1", "FAILED", 1), rec("P1", "PASSED", 2), rec("P1", "FAILED", 3)]
    assert tracker.effective_status(records) == SubmissionStatus.PASSED


def test_effective_status_uses_latest_sequence_not_list_order():
    records = [rec("P1", "PENDING", 5), rec("P1", "FAILED", 2)]
    assert tracker.effective_status(records) == SubmissionStatus.PENDING


def test_solved_set_never_shrinks():
    records = []
    history = [("P1", "PASSED"), ("P2", "FAILED"), ("P1", "FAILED"), ("P2", "PASSED"), ("P2", "FAILED")]
    previous = set()

    for seq, (problem_id, status) in enumerate(history, start=1):
        records.append(rec(problem_id, status, seq))
        solved = tracker.solved_problem_ids(records)
        assert previous <= solved
        previous = solved

    assert previous == {"P1", "P2"}

# ==================== RECORDING ====================

async def test_records_get_increasing_sequence_numbers(db):
    problem_id = await insert_problem(db)
    assignment = await insert_assignment(db, [(problem_id, None)])
    enrollment = await enrollments.join(db, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1")

    first = await tracker.record_submission(
        db, enrollment["enrollment_id"], problem_id, "python", "print(1)", grade(SubmissionStatus.FAILED, 0, 2)
    )
    second = await tracker.record_submission(
        db, enrollment["enrollment_id"], problem_id, "python", "print(2)", grade(SubmissionStatus.PASSED, 2, 2)
    )

    assert (first["seq"], second["seq"]) == (1, 2)
    assert second["status"] == "PASSED"
    assert second["testcase_digest"] == "abc123"

    statuses = await tracker.problem_statuses(db, enrollment["enrollment_id"])
    assert statuses == {problem_id: SubmissionStatus.PASSED}


async def test_record_without_judge_result_is_pending(db):
    problem_id = await insert_problem(db)
    assignment = await insert_assignment(db, [(problem_id, None)])
    enrollment = await enrollments.join(db, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1")

    record = await tracker.record_submission(db, enrollment["enrollment_id"], problem_id, "python", "x", None)
    assert record["status"] == "PENDING"


async def test_untouched_problems_are_not_attempted(db):
    p1 = await insert_problem(db)
    p2 = await insert_problem(db)
    assignment = await insert_assignment(db, [(p1, None), (p2, None)])
    enrollment = await enrollments.join(db, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1")

    await tracker.record_submission(db, enrollment["enrollment_id"], p1, "python", "x", grade(SubmissionStatus.FAILED))

    statuses = await tracker.problem_statuses(db, enrollment["enrollment_id"])
    assert statuses == {p1: SubmissionStatus.FAILED, p2: SubmissionStatus.NOT_ATTEMPTED}


async def test_unknown_enrollment(db):
    with pytest.raises(errors.StateConflict) as exc:
        await tracker.record_submission(db, "ENR_MISSING", "PRB_X", "python", "x", None)
    assert exc.value.reason == "NotEnrolled"


async def test_problem_outside_scope(db):
    problem_id = await insert_problem(db)
    other = await insert_problem(db)
    assignment = await insert_assignment(db, [(problem_id, None)])
    enrollment = await enrollments.join(db, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1")

    with pytest.raises(errors.NotFound):
        await tracker.record_submission(db, enrollment["enrollment_id"], other, "python", "x", None)


async def test_submission_after_window_creates_no_record(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)], duration_minutes=30)
    await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1")
    enrollment = await enrollments.start(db, contest["contest_id"], "S1")

    later = utcnow() + timedelta(minutes=45)
    with pytest.raises(errors.StateConflict) as exc:
        await tracker.record_submission(
            db, enrollment["enrollment_id"], problem_id, "python", "x", grade(SubmissionStatus.PASSED), now=later
        )

    assert exc.value.reason == "SubmissionWindowClosed"
    assert await db.submissions.count_documents({}) == 0


async def test_contest_submission_requires_start(db):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)])
    enrollment = await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1")

    with pytest.raises(errors.StateConflict) as exc:
        await tracker.record_submission(db, enrollment["enrollment_id"], problem_id, "python", "x", None)
    assert exc.value.reason == "SubmissionWindowClosed"
