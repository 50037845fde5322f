from collections import Counter
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab import errors
from classlab.assignments import database as assignments_db
from classlab.auth.permissions import UserContext, check_ownership
from classlab.contests import database as contests_db
from classlab.faculty.common_audit import log_audit
from classlab.participation.enrollment import list_enrollments
from classlab.participation.models import ScopeType, SubmissionStatus
from classlab.problems import database as problems_db
from classlab.users import database as users_db
from classlab.users.models import UserRole

# ==================== OWNERSHIP ====================

async def get_owned_problem(db: AsyncIOMotorDatabase, problem_id: str, user: UserContext) -> dict:
    problem = await db.problems.find_one({"problem_id": problem_id}, {"_id": 0})
    return check_ownership(problem, user, "Problem")


async def get_owned_contest(db: AsyncIOMotorDatabase, contest_id: str, user: UserContext) -> dict:
    contest = await db.contests.find_one({"contest_id": contest_id}, {"_id": 0})
    return check_ownership(contest, user, "Contest")


async def get_owned_assignment(db: AsyncIOMotorDatabase, assignment_id: str, user: UserContext) -> dict:
    assignment = await db.assignments.find_one({"assignment_id": assignment_id}, {"_id": 0})
    return check_ownership(assignment, user, "Assignment")


def owner_filter(user: UserContext) -> Optional[str]:
    """created_by filter for listings; admins see everything"""
    return None if user.is_admin else user.user_id

# ==================== PROBLEMS ====================

async def create_problem(db: AsyncIOMotorDatabase, user: UserContext, data: dict) -> dict:
    problem = await problems_db.create_problem(db, data, user.user_id)
    await log_audit(db, user, "create_problem", "problem", problem["problem_id"])
    return problem


async def update_problem(db: AsyncIOMotorDatabase, user: UserContext, problem_id: str, data: dict) -> dict:
    await get_owned_problem(db, problem_id, user)
    problem = await problems_db.update_problem(db, problem_id, data)
    await log_audit(db, user, "update_problem", "problem", problem_id, {"fields": sorted(data)})
    return problem


async def delete_problem(db: AsyncIOMotorDatabase, user: UserContext, problem_id: str) -> dict:
    await get_owned_problem(db, problem_id, user)
    await problems_db.delete_problem(db, problem_id)
    await log_audit(db, user, "delete_problem", "problem", problem_id)
    return {"problem_id": problem_id, "deleted": True}

# ==================== CONTESTS ====================

async def create_contest(db: AsyncIOMotorDatabase, user: UserContext, data: dict) -> dict:
    contest = await contests_db.create_contest(db, data, user.user_id)
    await log_audit(db, user, "create_contest", "contest", contest["contest_id"])
    return contest


async def update_contest(db: AsyncIOMotorDatabase, user: UserContext, contest_id: str, data: dict) -> dict:
    contest = await get_owned_contest(db, contest_id, user)
    updated = await contests_db.update_contest(db, contest, data)
    await log_audit(db, user, "update_contest", "contest", contest_id, {"fields": sorted(data)})
    return updated


async def publish_contest(db: AsyncIOMotorDatabase, user: UserContext, contest_id: str, is_published: bool) -> dict:
    contest = await get_owned_contest(db, contest_id, user)
    updated = await contests_db.set_published(db, contest, is_published)
    await log_audit(db, user, "publish_contest" if is_published else "unpublish_contest", "contest", contest_id)
    return updated


async def delete_contest(db: AsyncIOMotorDatabase, user: UserContext, contest_id: str) -> dict:
    await get_owned_contest(db, contest_id, user)
    summary = await contests_db.delete_contest(db, contest_id)
    await log_audit(db, user, "delete_contest", "contest", contest_id, summary)
    return summary

# ==================== ASSIGNMENTS ====================

async def create_assignment(db: AsyncIOMotorDatabase, user: UserContext, data: dict) -> dict:
    assignment = await assignments_db.create_assignment(db, data, user.user_id)
    await log_audit(db, user, "create_assignment", "assignment", assignment["assignment_id"])
    return assignment


async def update_assignment(db: AsyncIOMotorDatabase, user: UserContext, assignment_id: str, data: dict) -> dict:
    assignment = await get_owned_assignment(db, assignment_id, user)
    updated = await assignments_db.update_assignment(db, assignment, data)
    await log_audit(db, user, "update_assignment", "assignment", assignment_id, {"fields": sorted(data)})
    return updated


async def publish_assignment(db: AsyncIOMotorDatabase, user: UserContext, assignment_id: str, is_published: bool) -> dict:
    assignment = await get_owned_assignment(db, assignment_id, user)
    updated = await assignments_db.set_published(db, assignment, is_published)
    await log_audit(db, user, "publish_assignment" if is_published else "unpublish_assignment", "assignment", assignment_id)
    return updated


async def delete_assignment(db: AsyncIOMotorDatabase, user: UserContext, assignment_id: str) -> dict:
    await get_owned_assignment(db, assignment_id, user)
    summary = await assignments_db.delete_assignment(db, assignment_id)
    await log_audit(db, user, "delete_assignment", "assignment", assignment_id, summary)
    return summary

# ==================== SUBMISSIONS ====================

async def list_scope_submissions(
    db: AsyncIOMotorDatabase,
    scope_type: ScopeType,
    scope_id: str,
    status: Optional[SubmissionStatus] = None,
    student_id: Optional[str] = None
) -> List[dict]:
    """Every record of the scope, newest first, labelled with the student's name"""
    query = {"scope_type": ScopeType(scope_type).value, "scope_id": scope_id}
    if status:
        query["status"] = SubmissionStatus(status).value
    if student_id:
        query["student_id"] = student_id

    names = {e["student_id"]: e.get("student_name") for e in await list_enrollments(db, scope_type, scope_id)}

    cursor = db.submissions.find(query, {"_id": 0}).sort("submitted_at", -1)
    records = await cursor.to_list(length=None)
    for record in records:
        record["student_name"] = names.get(record["student_id"])
    return records

# ==================== STUDENTS ====================

async def list_students(db: AsyncIOMotorDatabase, user: UserContext) -> List[dict]:
    return await users_db.list_users(db, UserRole.STUDENT, added_by=owner_filter(user))


async def create_student(db: AsyncIOMotorDatabase, user: UserContext, data: dict) -> dict:
    student = await users_db.create_user(db, data, UserRole.STUDENT, added_by=user.user_id)
    await log_audit(db, user, "create_student", "student", student["user_id"])
    return student


async def get_owned_student(db: AsyncIOMotorDatabase, student_id: str, user: UserContext) -> dict:
    """Faculty reach only the students they added; admins reach all"""
    student = await users_db.get_user(db, student_id)
    owner = owner_filter(user)
    if not student or student["role"] != UserRole.STUDENT.value or (owner and student.get("added_by") != owner):
        raise errors.NotFound("Student not found")
    return student


async def update_student(db: AsyncIOMotorDatabase, user: UserContext, student_id: str, data: dict) -> dict:
    await get_owned_student(db, student_id, user)
    updated = await users_db.update_user(db, student_id, data)
    await log_audit(db, user, "update_student", "student", student_id, {"fields": sorted(data)})
    return updated


async def delete_student(db: AsyncIOMotorDatabase, user: UserContext, student_id: str) -> dict:
    """Removes the account only; past enrollments and submissions stay on the leaderboards"""
    await users_db.delete_user(db, student_id, UserRole.STUDENT, added_by=owner_filter(user))
    await log_audit(db, user, "delete_student", "student", student_id)
    return {"student_id": student_id, "deleted": True}


async def reset_student_password(db: AsyncIOMotorDatabase, user: UserContext, student_id: str) -> dict:
    """The password goes back to the student's registration number"""
    student = await get_owned_student(db, student_id, user)
    if not student.get("reg_number"):
        raise errors.ValidationError("Student has no registration number to reset to")

    await users_db.set_password(db, student_id, student["reg_number"])
    await log_audit(db, user, "reset_student_password", "student", student_id)
    return {"student_id": student_id, "reset": True}


async def change_own_password(db: AsyncIOMotorDatabase, user: UserContext, current_password: str, new_password: str) -> dict:
    await users_db.change_password(db, user.user_id, current_password, new_password)
    await log_audit(db, user, "change_password", user.role, user.user_id)
    return {"user_id": user.user_id, "changed": True}

# ==================== DASHBOARD ====================

async def get_dashboard_stats(db: AsyncIOMotorDatabase, user: UserContext) -> dict:
    owner = owner_filter(user)

    contests = await contests_db.list_contests(db, created_by=owner)
    assignments = await assignments_db.list_assignments(db, created_by=owner)
    problem_query = {"created_by": owner} if owner else {}
    student_query = {"role": UserRole.STUDENT.value}
    if owner:
        student_query["added_by"] = owner

    scope_filters = (
        [{"scope_type": ScopeType.CONTEST.value, "scope_id": c["contest_id"]} for c in contests] +
        [{"scope_type": ScopeType.ASSIGNMENT.value, "scope_id": a["assignment_id"]} for a in assignments]
    )

    recent = []
    submission_counts = Counter()
    if scope_filters:
        cursor = db.submissions.find({"$or": scope_filters}, {"_id": 0, "code": 0}).sort("submitted_at", -1)
        records = await cursor.to_list(length=None)
        submission_counts = Counter(r["status"] for r in records)
        recent = records[:10]

    return {
        "total_problems": await db.problems.count_documents(problem_query),
        "total_students": await db.users.count_documents(student_query),
        "contests": dict(Counter(c["status"] for c in contests), total=len(contests)),
        "assignments": dict(Counter(a["status"] for a in assignments), total=len(assignments)),
        "submissions": {
            "total": sum(submission_counts.values()),
            "passed": submission_counts.get(SubmissionStatus.PASSED.value, 0),
            "failed": submission_counts.get(SubmissionStatus.FAILED.value, 0)
        },
        "recent_submissions": recent
    }
