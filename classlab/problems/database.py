from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Iterable, List, Optional

from classlab import errors
from classlab.common import generate_id, utcnow
from classlab.errors import ConflictReason
from classlab.participation import lifecycle
from classlab.participation.models import ScopeState, ScopeType

SUMMARY_FIELDS = {"_id": 0, "problem_id": 1, "title": 1, "difficulty": 1, "points": 1, "created_at": 1, "created_by": 1}

# ==================== PROBLEM STORE ====================

async def get_problem(db: AsyncIOMotorDatabase, problem_id: str) -> dict:
    """Get problem by ID or raise NotFound"""
    problem = await db.problems.find_one({"problem_id": problem_id}, {"_id": 0})
    if not problem:
        raise errors.NotFound(f"Problem {problem_id} not found")
    return problem


async def get_problems(db: AsyncIOMotorDatabase, problem_ids: List[str]) -> dict:
    """Map of problem_id -> problem for the ids that exist"""
    cursor = db.problems.find({"problem_id": {"$in": list(problem_ids)}}, {"_id": 0})
    return {p["problem_id"]: p for p in await cursor.to_list(length=None)}


async def list_all_test_cases(db: AsyncIOMotorDatabase, problem_id: str) -> List[dict]:
    """Every test case, hidden included. Used for grading."""
    problem = await get_problem(db, problem_id)
    return [dict(tc) for tc in problem.get("test_cases", [])]


async def list_visible_test_cases(db: AsyncIOMotorDatabase, problem_id: str) -> List[dict]:
    """Test cases a student may see, for run previews"""
    return [tc for tc in await list_all_test_cases(db, problem_id) if not tc.get("is_hidden", False)]


def strip_hidden(problem: dict) -> dict:
    """Student-facing copy of a problem without hidden test cases"""
    visible = dict(problem)
    visible["test_cases"] = [tc for tc in problem.get("test_cases", []) if not tc.get("is_hidden", False)]
    return visible

# ==================== AUTHORING CRUD ====================

async def create_problem(db: AsyncIOMotorDatabase, data: dict, creator_id: str) -> dict:
    problem = {
        "problem_id": generate_id("PRB"),
        "title": data["title"].strip(),
        "description": data["description"],
        "difficulty": data["difficulty"],
        "points": data.get("points", 10),
        "time_limit_ms": data.get("time_limit_ms", 2000),
        "memory_limit_mb": data.get("memory_limit_mb", 256),
        "sample_input": data.get("sample_input", ""),
        "sample_output": data.get("sample_output", ""),
        "test_cases": data["test_cases"],
        "created_by": creator_id,
        "created_at": utcnow(),
        "updated_at": utcnow()
    }

    await db.problems.insert_one(problem)
    problem.pop("_id", None)
    return problem


# Fields that change how a submission is graded or scored
GRADING_FIELDS = ("test_cases", "points")


async def check_problem_editable(db: AsyncIOMotorDatabase, problem_id: str, updates: dict, now=None) -> None:
    """Test cases and points are locked while a contest using the problem is running"""
    if not any(updates.get(field) is not None for field in GRADING_FIELDS):
        return

    now = now or utcnow()
    cursor = db.contests.find({"problems.problem_id": problem_id, "is_published": True}, {"_id": 0})
    for contest in await cursor.to_list(length=None):
        if lifecycle.scope_state(ScopeType.CONTEST, contest, now) == ScopeState.ACTIVE:
            raise errors.StateConflict(
                ConflictReason.ALREADY_STARTED,
                f"Problem is used by running contest {contest['contest_id']}; test cases and points are locked"
            )


async def update_problem(db: AsyncIOMotorDatabase, problem_id: str, updates: dict) -> dict:
    updates = {k: v for k, v in updates.items() if v is not None}
    await check_problem_editable(db, problem_id, updates)
    updates["updated_at"] = utcnow()

    await db.problems.update_one({"problem_id": problem_id}, {"$set": updates})
    return await get_problem(db, problem_id)


async def delete_problem(db: AsyncIOMotorDatabase, problem_id: str) -> None:
    """Refuses while any contest or assignment still references the problem"""
    in_contest = await db.contests.count_documents({"problems.problem_id": problem_id})
    in_assignment = await db.assignments.count_documents({"problems.problem_id": problem_id})
    if in_contest or in_assignment:
        raise errors.ValidationError("Problem is used by a contest or assignment; remove it there first")

    result = await db.problems.delete_one({"problem_id": problem_id})
    if result.deleted_count == 0:
        raise errors.NotFound(f"Problem {problem_id} not found")


async def list_problems(
    db: AsyncIOMotorDatabase,
    created_by: Optional[str] = None,
    search: Optional[str] = None,
    difficulty: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    exclude_ids: Optional[Iterable[str]] = None
) -> List[dict]:
    query = {}
    if exclude_ids:
        query["problem_id"] = {"$nin": list(exclude_ids)}
    if created_by:
        query["created_by"] = created_by
    if difficulty:
        query["difficulty"] = difficulty
    if search and search.strip():
        query["title"] = {"$regex": search.strip(), "$options": "i"}

    cursor = db.problems.find(query, SUMMARY_FIELDS).sort("created_at", -1).skip(skip).limit(limit)
    return await cursor.to_list(length=limit)


async def validate_problem_refs(db: AsyncIOMotorDatabase, problems: List[dict]) -> List[dict]:
    """Scope problem list: non-empty, no duplicates, every problem exists"""
    if not problems:
        raise errors.ValidationError("At least one problem is required")

    ids = [p["problem_id"] for p in problems]
    if len(set(ids)) != len(ids):
        raise errors.ValidationError("A problem may appear only once")

    found = await get_problems(db, ids)
    missing = [pid for pid in ids if pid not in found]
    if missing:
        raise errors.NotFound(f"Problems not found: {', '.join(missing)}")

    return [{"problem_id": p["problem_id"], "points": p.get("points")} for p in problems]
