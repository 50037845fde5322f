"""
Submit pipeline and per-student progress
"""

from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab import errors
from classlab.common import utcnow
from classlab.errors import ConflictReason
from classlab.judge.client import JudgeClient
from classlab.judge.grader import GradeResult, grade_with_timeout
from classlab.participation import enrollment as enrollments
from classlab.participation import lifecycle
from classlab.participation.models import ScopeState, ScopeType, SubmissionStatus
from classlab.participation.scoring import problem_point_map
from classlab.participation.tracker import group_by_problem, effective_status, list_records, record_submission
from classlab.problems.database import get_problems, list_all_test_cases
from classlab.system.logger_config import get_logger

logger = get_logger(__name__)


def public_failure(result: GradeResult) -> Optional[dict]:
    """
    First failing case. Hidden cases keep only their position and any
    compiler message; stdout and stderr both depend on the hidden input.
    """
    case = result.failed_case
    if not case:
        return None
    if case.get("is_hidden"):
        compile_error = bool(case.get("compile_error"))
        return {
            "index": case["index"],
            "is_hidden": True,
            "compile_error": compile_error,
            "error": case.get("compile_output") if compile_error else None
        }
    return case


async def get_visible_scope(db: AsyncIOMotorDatabase, scope_type: ScopeType, scope_id: str, now: datetime) -> dict:
    """Students never see Draft scopes"""
    scope = await enrollments.load_scope(db, scope_type, scope_id)
    if lifecycle.scope_state(scope_type, scope, now) == ScopeState.DRAFT:
        raise errors.NotFound(f"{ScopeType(scope_type).value.capitalize()} {scope_id} not found")
    return scope


async def submit_solution(
    db: AsyncIOMotorDatabase,
    judge: JudgeClient,
    scope_type: ScopeType,
    scope_id: str,
    student_id: str,
    student_name: Optional[str],
    problem_id: str,
    language: str,
    code: str
) -> dict:
    """
    Grade and record one submission.

    Assignments join on first submit; contests need an explicit join + start.
    The window is checked before the judge is called, and again when recording.
    A judge timeout or failure records nothing.
    """
    scope_type = ScopeType(scope_type)
    now = utcnow()
    scope = await get_visible_scope(db, scope_type, scope_id, now)

    if problem_id not in {p["problem_id"] for p in scope.get("problems", [])}:
        raise errors.NotFound(f"Problem {problem_id} is not part of this {scope_type.value}")

    if scope_type == ScopeType.ASSIGNMENT:
        enrollment = await enrollments.get_enrollment(db, scope_type, scope_id, student_id)
        if not enrollment:
            if lifecycle.scope_state(scope_type, scope, now) != ScopeState.ACTIVE:
                raise errors.StateConflict(ConflictReason.SUBMISSION_WINDOW_CLOSED, "Submission window is closed")
            enrollment = await enrollments.join(db, scope_type, scope_id, student_id, student_name, now=now)
    else:
        enrollment = await enrollments.get_enrollment(db, scope_type, scope_id, student_id)

    lifecycle.check_can_submit(scope_type, scope, enrollment, now)

    test_cases = await list_all_test_cases(db, problem_id)
    result = await grade_with_timeout(judge, code, language, test_cases)

    record = await record_submission(
        db, enrollment["enrollment_id"], problem_id, language, code, result
    )

    logger.info("Submission %s: %s %s/%s", record["submission_id"], result.status.value,
                result.passed_tests, result.total_tests)

    return {
        "submission_id": record["submission_id"],
        "status": record["status"],
        "passed_tests": record["passed_tests"],
        "total_tests": record["total_tests"],
        "message": record["message"],
        "submitted_at": record["submitted_at"],
        "failed_case": public_failure(result)
    }


async def get_progress(db: AsyncIOMotorDatabase, scope_type: ScopeType, scope_id: str, student_id: str) -> dict:
    """Per-problem effective status plus the student's own window"""
    scope_type = ScopeType(scope_type)
    now = utcnow()
    scope = await get_visible_scope(db, scope_type, scope_id, now)
    enrollment = await enrollments.get_enrollment(db, scope_type, scope_id, student_id)

    problem_ids = [p["problem_id"] for p in scope.get("problems", [])]
    problems_by_id = await get_problems(db, problem_ids)
    points = problem_point_map(scope, problems_by_id)

    records = await list_records(db, enrollment["enrollment_id"]) if enrollment else []
    by_problem = group_by_problem(records)

    problems = []
    total_points = 0
    solved = 0
    for problem_id in problem_ids:
        status = effective_status(by_problem.get(problem_id, []))
        if status == SubmissionStatus.PASSED:
            total_points += points[problem_id]
            solved += 1
        problems.append({
            "problem_id": problem_id,
            "title": problems_by_id.get(problem_id, {}).get("title"),
            "points": points[problem_id],
            "status": status,
            "attempts": len(by_problem.get(problem_id, []))
        })

    personal_end = None
    if scope_type == ScopeType.CONTEST:
        personal_end = lifecycle.personal_end(scope, enrollment)

    return {
        "scope_type": scope_type,
        "scope_id": scope_id,
        "state": lifecycle.scope_state(scope_type, scope, now),
        "personal_state": lifecycle.student_state(scope_type, scope, enrollment, now),
        "enrolled": enrollment is not None,
        "joined_at": enrollment.get("joined_at") if enrollment else None,
        "personal_end": personal_end,
        "total_points": total_points,
        "problems_solved": solved,
        "problems": problems
    }


async def load_viewable_scope(db: AsyncIOMotorDatabase, scope_type: ScopeType, scope_id: str, user) -> dict:
    """
    Students and other faculty see published scopes only; the owner and
    admins also see drafts
    """
    scope = await enrollments.load_scope(db, scope_type, scope_id)
    if scope.get("is_published") or user.is_admin or scope.get("created_by") == user.user_id:
        return scope
    raise errors.NotFound(f"{ScopeType(scope_type).value.capitalize()} {scope_id} not found")


async def describe_scope(db: AsyncIOMotorDatabase, scope_type: ScopeType, scope: dict, user) -> dict:
    """Scope with status, problem summaries and, for students, their own window"""
    scope_type = ScopeType(scope_type)
    now = utcnow()

    problem_ids = [p["problem_id"] for p in scope.get("problems", [])]
    problems_by_id = await get_problems(db, problem_ids)
    points = problem_point_map(scope, problems_by_id)

    view = dict(scope)
    view["status"] = lifecycle.scope_state(scope_type, scope, now).value
    view["problem_count"] = len(problem_ids)
    view["total_points"] = sum(points.values())
    view["problems"] = [
        {
            "problem_id": pid,
            "title": problems_by_id.get(pid, {}).get("title"),
            "difficulty": problems_by_id.get(pid, {}).get("difficulty"),
            "points": points[pid]
        }
        for pid in problem_ids
    ]

    if user.is_student:
        scope_id = enrollments.scope_id_of(scope_type, scope)
        enrollment = await enrollments.get_enrollment(db, scope_type, scope_id, user.user_id)
        personal = lifecycle.student_state(scope_type, scope, enrollment, now)
        view["enrolled"] = enrollment is not None
        view["joined_at"] = enrollment.get("joined_at") if enrollment else None
        view["personal_state"] = personal.value
        if scope_type == ScopeType.CONTEST:
            view["personal_end"] = lifecycle.personal_end(scope, enrollment)
            # Problem list stays sealed until the student's own window opens
            if personal == ScopeState.UPCOMING:
                view["problems"] = []

    return view


async def sealed_problem_ids(db: AsyncIOMotorDatabase, student_id: str, now: Optional[datetime] = None) -> set:
    """
    Problems a student may not open yet: listed in a published contest the
    student has not started, and in nothing else the student can already see.
    """
    now = now or utcnow()
    contests = await db.contests.find({"is_published": True}, {"_id": 0}).to_list(length=None)
    assignments = await db.assignments.find({"is_published": True}, {"_id": 0}).to_list(length=None)
    mine = {
        e["scope_id"]: e
        for e in await db.enrollments.find(
            {"scope_type": ScopeType.CONTEST.value, "student_id": student_id}, {"_id": 0}
        ).to_list(length=None)
    }

    sealed, open_ids = set(), set()
    for contest in contests:
        state = lifecycle.student_state(ScopeType.CONTEST, contest, mine.get(contest["contest_id"]), now)
        target = sealed if state == ScopeState.UPCOMING else open_ids
        target.update(p["problem_id"] for p in contest.get("problems", []))

    for assignment in assignments:
        if lifecycle.scope_state(ScopeType.ASSIGNMENT, assignment, now) != ScopeState.UPCOMING:
            open_ids.update(p["problem_id"] for p in assignment.get("problems", []))

    return sealed - open_ids


async def check_problem_visible(db: AsyncIOMotorDatabase, problem_id: str, user) -> None:
    if user.is_student and problem_id in await sealed_problem_ids(db, user.user_id):
        raise errors.PermissionDenied("This problem opens when you start its contest")
