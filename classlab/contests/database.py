from datetime import datetime, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab import errors
from classlab.common import generate_id, utcnow
from classlab.errors import ConflictReason
from classlab.participation import lifecycle
from classlab.participation.models import ScopeState, ScopeType
from classlab.problems.database import validate_problem_refs
from classlab.system.logger_config import get_logger

logger = get_logger(__name__)

# Fields frozen once the contest window has opened
SCHEDULE_FIELDS = ("start_time", "duration_minutes", "problems")


def with_status(contest: dict, now: Optional[datetime] = None) -> dict:
    contest["status"] = lifecycle.scope_state(ScopeType.CONTEST, contest, now or utcnow()).value
    return contest


async def get_contest(db: AsyncIOMotorDatabase, contest_id: str) -> dict:
    contest = await db.contests.find_one({"contest_id": contest_id}, {"_id": 0})
    if not contest:
        raise errors.NotFound(f"Contest {contest_id} not found")
    return contest


async def create_contest(db: AsyncIOMotorDatabase, data: dict, creator_id: str) -> dict:
    problems = await validate_problem_refs(db, data["problems"])
    now = utcnow()

    contest = {
        "contest_id": generate_id("CON"),
        "title": data["title"].strip(),
        "description": data.get("description", ""),
        "start_time": data["start_time"],
        "duration_minutes": data["duration_minutes"],
        "end_time": data["start_time"] + timedelta(minutes=data["duration_minutes"]),
        "problems": problems,
        "is_published": data.get("is_published", False),
        "created_by": creator_id,
        "created_at": now,
        "updated_at": now
    }

    await db.contests.insert_one(contest)
    contest.pop("_id", None)

    logger.info("Contest %s created by %s", contest["contest_id"], creator_id)
    return with_status(contest, now)


async def update_contest(db: AsyncIOMotorDatabase, contest: dict, updates: dict, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    updates = {k: v for k, v in updates.items() if v is not None}

    if any(field in updates for field in SCHEDULE_FIELDS):
        lifecycle.check_schedule_editable(contest, now)

    if "problems" in updates:
        updates["problems"] = await validate_problem_refs(db, updates["problems"])

    start = updates.get("start_time", contest["start_time"])
    duration = updates.get("duration_minutes", contest["duration_minutes"])
    updates["end_time"] = start + timedelta(minutes=duration)
    updates["updated_at"] = now

    await db.contests.update_one({"contest_id": contest["contest_id"]}, {"$set": updates})
    return with_status(await get_contest(db, contest["contest_id"]), now)


async def set_published(db: AsyncIOMotorDatabase, contest: dict, is_published: bool, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    if not is_published and lifecycle.scope_state(ScopeType.CONTEST, contest, now) == ScopeState.ACTIVE:
        raise errors.StateConflict(ConflictReason.ALREADY_STARTED, "A running contest cannot be unpublished")

    await db.contests.update_one(
        {"contest_id": contest["contest_id"]},
        {"$set": {"is_published": is_published, "updated_at": now}}
    )
    return with_status(await get_contest(db, contest["contest_id"]), now)


async def delete_contest(db: AsyncIOMotorDatabase, contest_id: str) -> dict:
    """Cascades to enrollments and submissions"""
    result = await db.contests.delete_one({"contest_id": contest_id})
    if result.deleted_count == 0:
        raise errors.NotFound(f"Contest {contest_id} not found")

    scope = {"scope_type": ScopeType.CONTEST.value, "scope_id": contest_id}
    enrollments = await db.enrollments.delete_many(scope)
    submissions = await db.submissions.delete_many(scope)

    return {
        "contest_id": contest_id,
        "enrollments_deleted": enrollments.deleted_count,
        "submissions_deleted": submissions.deleted_count
    }


async def list_contests(
    db: AsyncIOMotorDatabase,
    created_by: Optional[str] = None,
    published_only: bool = False,
    upcoming_only: bool = False
) -> List[dict]:
    now = utcnow()
    query = {}
    if created_by:
        query["created_by"] = created_by
    if published_only:
        query["is_published"] = True
    if upcoming_only:
        query["start_time"] = {"$gt": now}

    cursor = db.contests.find(query, {"_id": 0}).sort("start_time", 1 if upcoming_only else -1)
    contests = await cursor.to_list(length=None)
    return [with_status(c, now) for c in contests]
