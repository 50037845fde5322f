"""
Join / start commands

Both are single-document atomic updates on the enrollments collection:
join upserts on the unique (scope_type, scope_id, student_id) key and
start sets joined_at only while it is still null.
"""

from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from classlab import errors
from classlab.common import generate_id, utcnow
from classlab.participation import lifecycle
from classlab.participation.models import ScopeState, ScopeType
from classlab.system.logger_config import get_logger

logger = get_logger(__name__)

SCOPE_COLLECTIONS = {
    ScopeType.CONTEST: ("contests", "contest_id"),
    ScopeType.ASSIGNMENT: ("assignments", "assignment_id"),
}

# ==================== LOOKUPS ====================

def scope_id_of(scope_type: ScopeType, scope: dict) -> str:
    _, key = SCOPE_COLLECTIONS[ScopeType(scope_type)]
    return scope[key]


async def load_scope(db: AsyncIOMotorDatabase, scope_type: ScopeType, scope_id: str) -> dict:
    """Contest or assignment document, or NotFound"""
    collection, key = SCOPE_COLLECTIONS[ScopeType(scope_type)]
    scope = await db[collection].find_one({key: scope_id}, {"_id": 0})
    if not scope:
        raise errors.NotFound(f"{ScopeType(scope_type).value.capitalize()} {scope_id} not found")
    return scope


async def get_enrollment(
    db: AsyncIOMotorDatabase,
    scope_type: ScopeType,
    scope_id: str,
    student_id: str
) -> Optional[dict]:
    return await db.enrollments.find_one(
        {"scope_type": ScopeType(scope_type).value, "scope_id": scope_id, "student_id": student_id},
        {"_id": 0}
    )


async def get_enrollment_by_id(db: AsyncIOMotorDatabase, enrollment_id: str) -> Optional[dict]:
    return await db.enrollments.find_one({"enrollment_id": enrollment_id}, {"_id": 0})


async def list_enrollments(db: AsyncIOMotorDatabase, scope_type: ScopeType, scope_id: str) -> list:
    cursor = db.enrollments.find(
        {"scope_type": ScopeType(scope_type).value, "scope_id": scope_id},
        {"_id": 0}
    ).sort("enrolled_at", 1)
    return await cursor.to_list(length=None)

# ==================== COMMANDS ====================

async def join(
    db: AsyncIOMotorDatabase,
    scope_type: ScopeType,
    scope_id: str,
    student_id: str,
    student_name: Optional[str] = None,
    now: Optional[datetime] = None
) -> dict:
    """
    Enroll a student. Idempotent while the scope is open: an existing
    enrollment is returned as-is, but once the scope has ended every join
    is refused.

    Raises:
        NotFound: scope missing or unpublished
        StateConflict(NotYetOpen | AlreadyEnded): no enrollment is created
    """
    scope_type = ScopeType(scope_type)
    now = now or utcnow()
    scope = await load_scope(db, scope_type, scope_id)

    state = lifecycle.scope_state(scope_type, scope, now)
    if state == ScopeState.DRAFT:
        raise errors.NotFound(f"{scope_type.value.capitalize()} {scope_id} not found")

    existing = await get_enrollment(db, scope_type, scope_id, student_id)
    if existing and state != ScopeState.COMPLETED:
        return existing

    lifecycle.check_can_join(scope_type, scope, now)

    key = {"scope_type": scope_type.value, "scope_id": scope_id, "student_id": student_id}
    new_fields = {
        "enrollment_id": generate_id("ENR"),
        "student_name": student_name,
        "enrolled_at": now,
        # Assignments have no personal timer, so joining is starting
        "joined_at": now if scope_type == ScopeType.ASSIGNMENT else None,
        "submission_seq": 0
    }

    try:
        enrollment = await db.enrollments.find_one_and_update(
            key,
            {"$setOnInsert": new_fields},
            upsert=True,
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        # Lost the race against a concurrent join of the same student
        enrollment = await get_enrollment(db, scope_type, scope_id, student_id)

    logger.info("Student %s joined %s %s", student_id, scope_type.value, scope_id)
    return enrollment


async def start(
    db: AsyncIOMotorDatabase,
    contest_id: str,
    student_id: str,
    now: Optional[datetime] = None
) -> dict:
    """
    Open the student's personal contest window. A repeat call is a no-op
    returning the enrollment with its original joined_at.

    Raises:
        NotFound: contest missing or unpublished
        StateConflict(NotEnrolled | NotYetOpen | AlreadyEnded)
    """
    now = now or utcnow()
    contest = await load_scope(db, ScopeType.CONTEST, contest_id)
    enrollment = await get_enrollment(db, ScopeType.CONTEST, contest_id, student_id)

    if enrollment and enrollment.get("joined_at"):
        if lifecycle.scope_state(ScopeType.CONTEST, contest, now) == ScopeState.DRAFT:
            raise errors.NotFound(f"Contest {contest_id} not found")
        return enrollment

    lifecycle.check_can_start(contest, enrollment, now)

    result = await db.enrollments.update_one(
        {"enrollment_id": enrollment["enrollment_id"], "joined_at": None},
        {"$set": {"joined_at": now}}
    )
    if result.modified_count:
        logger.info("Student %s started contest %s", student_id, contest_id)

    return await get_enrollment_by_id(db, enrollment["enrollment_id"])
