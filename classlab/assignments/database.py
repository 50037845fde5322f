from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab import errors
from classlab.common import generate_id, utcnow
from classlab.participation import lifecycle
from classlab.participation.models import ScopeType
from classlab.problems.database import validate_problem_refs
from classlab.system.logger_config import get_logger

logger = get_logger(__name__)


def with_status(assignment: dict, now: Optional[datetime] = None) -> dict:
    assignment["status"] = lifecycle.scope_state(ScopeType.ASSIGNMENT, assignment, now or utcnow()).value
    return assignment


async def get_assignment(db: AsyncIOMotorDatabase, assignment_id: str) -> dict:
    assignment = await db.assignments.find_one({"assignment_id": assignment_id}, {"_id": 0})
    if not assignment:
        raise errors.NotFound(f"Assignment {assignment_id} not found")
    return assignment


async def create_assignment(db: AsyncIOMotorDatabase, data: dict, creator_id: str) -> dict:
    problems = await validate_problem_refs(db, data["problems"])
    now = utcnow()

    assignment = {
        "assignment_id": generate_id("ASG"),
        "title": data["title"].strip(),
        "description": data.get("description", ""),
        "start_time": data.get("start_time") or now,
        "due_date": data["due_date"],
        "problems": problems,
        "is_published": data.get("is_published", False),
        "created_by": creator_id,
        "created_at": now,
        "updated_at": now
    }

    if assignment["due_date"] <= assignment["start_time"]:
        raise errors.ValidationError("due_date must be in the future")

    await db.assignments.insert_one(assignment)
    assignment.pop("_id", None)

    logger.info("Assignment %s created by %s", assignment["assignment_id"], creator_id)
    return with_status(assignment, now)


async def update_assignment(db: AsyncIOMotorDatabase, assignment: dict, updates: dict) -> dict:
    """Assignments stay editable after opening; extending a due date is routine"""
    now = utcnow()
    updates = {k: v for k, v in updates.items() if v is not None}

    if "problems" in updates:
        updates["problems"] = await validate_problem_refs(db, updates["problems"])

    start = updates.get("start_time", assignment.get("start_time") or assignment["created_at"])
    due = updates.get("due_date", assignment["due_date"])
    if due <= start:
        raise errors.ValidationError("due_date must be after start_time")

    updates["updated_at"] = now
    await db.assignments.update_one({"assignment_id": assignment["assignment_id"]}, {"$set": updates})
    return with_status(await get_assignment(db, assignment["assignment_id"]), now)


async def set_published(db: AsyncIOMotorDatabase, assignment: dict, is_published: bool) -> dict:
    now = utcnow()
    await db.assignments.update_one(
        {"assignment_id": assignment["assignment_id"]},
        {"$set": {"is_published": is_published, "updated_at": now}}
    )
    return with_status(await get_assignment(db, assignment["assignment_id"]), now)


async def delete_assignment(db: AsyncIOMotorDatabase, assignment_id: str) -> dict:
    """Cascades to enrollments and submissions"""
    result = await db.assignments.delete_one({"assignment_id": assignment_id})
    if result.deleted_count == 0:
        raise errors.NotFound(f"Assignment {assignment_id} not found")

    scope = {"scope_type": ScopeType.ASSIGNMENT.value, "scope_id": assignment_id}
    enrollments = await db.enrollments.delete_many(scope)
    submissions = await db.submissions.delete_many(scope)

    return {
        "assignment_id": assignment_id,
        "enrollments_deleted": enrollments.deleted_count,
        "submissions_deleted": submissions.deleted_count
    }


async def list_assignments(
    db: AsyncIOMotorDatabase,
    created_by: Optional[str] = None,
    published_only: bool = False
) -> List[dict]:
    now = utcnow()
    query = {}
    if created_by:
        query["created_by"] = created_by
    if published_only:
        query["is_published"] = True

    cursor = db.assignments.find(query, {"_id": 0}).sort("due_date", 1)
    assignments = await cursor.to_list(length=None)
    return [with_status(a, now) for a in assignments]
