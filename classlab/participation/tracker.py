"""
Participation tracker

Append-only submission history per enrollment. Everything derived from it
(effective status, solved set) is computed by pure functions over records.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from classlab import errors
from classlab.common import generate_id, utcnow
from classlab.errors import ConflictReason
from classlab.judge.grader import GradeResult
from classlab.participation import lifecycle
from classlab.participation.enrollment import get_enrollment_by_id, load_scope
from classlab.participation.models import ScopeType, SubmissionStatus
from classlab.system.logger_config import get_logger

logger = get_logger(__name__)

# ==================== PURE DERIVATIONS ====================

def effective_status(records: Iterable[dict]) -> SubmissionStatus:
    """
    PASSED if any record passed, else the latest record's status,
    else NOT_ATTEMPTED. Records may arrive in any order.
    """
    latest = None
    for record in records:
        if record["status"] == SubmissionStatus.PASSED.value:
            return SubmissionStatus.PASSED
        if latest is None or record["seq"] > latest["seq"]:
            latest = record

    if latest is None:
        return SubmissionStatus.NOT_ATTEMPTED
    return SubmissionStatus(latest["status"])


def group_by_problem(records: Iterable[dict]) -> Dict[str, List[dict]]:
    grouped = defaultdict(list)
    for record in records:
        grouped[record["problem_id"]].append(record)
    return grouped


def statuses_from_records(records: Iterable[dict]) -> Dict[str, SubmissionStatus]:
    return {
        problem_id: effective_status(problem_records)
        for problem_id, problem_records in group_by_problem(records).items()
    }


def solved_problem_ids(records: Iterable[dict]) -> Set[str]:
    """Unique problem ids with at least one PASSED record"""
    return {
        record["problem_id"]
        for record in records
        if record["status"] == SubmissionStatus.PASSED.value
    }

# ==================== STORE ====================

async def list_records(db: AsyncIOMotorDatabase, enrollment_id: str) -> List[dict]:
    cursor = db.submissions.find({"enrollment_id": enrollment_id}, {"_id": 0}).sort("seq", 1)
    return await cursor.to_list(length=None)


async def problem_statuses(db: AsyncIOMotorDatabase, enrollment_id: str) -> Dict[str, SubmissionStatus]:
    """Effective status for every problem of the enrollment's scope"""
    enrollment = await get_enrollment_by_id(db, enrollment_id)
    if not enrollment:
        raise errors.StateConflict(ConflictReason.NOT_ENROLLED, "Enrollment not found")

    scope = await load_scope(db, enrollment["scope_type"], enrollment["scope_id"])
    derived = statuses_from_records(await list_records(db, enrollment_id))

    return {
        entry["problem_id"]: derived.get(entry["problem_id"], SubmissionStatus.NOT_ATTEMPTED)
        for entry in scope.get("problems", [])
    }


async def record_submission(
    db: AsyncIOMotorDatabase,
    enrollment_id: str,
    problem_id: str,
    language: str,
    code: str,
    judge_result: Optional[GradeResult],
    now: Optional[datetime] = None
) -> dict:
    """
    Append a submission record. Without a judge result the record is PENDING.

    Raises:
        StateConflict(NotEnrolled): unknown enrollment
        NotFound: problem is not part of the scope
        StateConflict(SubmissionWindowClosed): nothing is recorded
    """
    now = now or utcnow()

    enrollment = await get_enrollment_by_id(db, enrollment_id)
    if not enrollment:
        raise errors.StateConflict(ConflictReason.NOT_ENROLLED, "Enrollment not found")

    scope_type = ScopeType(enrollment["scope_type"])
    scope = await load_scope(db, scope_type, enrollment["scope_id"])

    if problem_id not in {p["problem_id"] for p in scope.get("problems", [])}:
        raise errors.NotFound(f"Problem {problem_id} is not part of this {scope_type.value}")

    lifecycle.check_can_submit(scope_type, scope, enrollment, now)

    counter = await db.enrollments.find_one_and_update(
        {"enrollment_id": enrollment_id},
        {"$inc": {"submission_seq": 1}},
        projection={"_id": 0, "submission_seq": 1},
        return_document=ReturnDocument.AFTER
    )

    record = {
        "submission_id": generate_id("SUB"),
        "enrollment_id": enrollment_id,
        "scope_type": scope_type.value,
        "scope_id": enrollment["scope_id"],
        "student_id": enrollment["student_id"],
        "problem_id": problem_id,
        "language": language,
        "code": code,
        "status": SubmissionStatus.PENDING.value,
        "seq": counter["submission_seq"],
        "submitted_at": now,
        "passed_tests": 0,
        "total_tests": 0,
        "testcase_digest": None,
        "message": None
    }

    if judge_result is not None:
        record.update({
            "status": judge_result.status.value,
            "passed_tests": judge_result.passed_tests,
            "total_tests": judge_result.total_tests,
            "testcase_digest": judge_result.testcase_digest,
            "message": judge_result.message
        })

    await db.submissions.insert_one(record)
    record.pop("_id", None)

    logger.info(
        "Recorded %s for %s on %s (seq %s)",
        record["status"], enrollment["student_id"], problem_id, record["seq"]
    )
    return record
