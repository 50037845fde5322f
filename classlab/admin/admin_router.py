"""
Admin API Router
Faculty account management and platform-wide statistics
"""

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List

from classlab.auth.permissions import UserContext, require_admin
from classlab.dependencies import get_db
from classlab.faculty.common_audit import log_audit
from classlab.participation.models import SubmissionStatus
from classlab.users import database as users_db
from classlab.users.models import UserCreate, UserResponse, UserRole

router = APIRouter(prefix="/admin", tags=["Admin"])

# ============================================================================
# FACULTY MANAGEMENT
# ============================================================================

@router.get("/faculty", response_model=List[UserResponse])
async def list_faculty(
    admin: UserContext = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await users_db.list_users(db, UserRole.FACULTY)


@router.post("/faculty", response_model=UserResponse, status_code=201)
async def create_faculty(
    data: UserCreate,
    admin: UserContext = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    faculty = await users_db.create_user(db, data.dict(), UserRole.FACULTY, added_by=admin.user_id)
    await log_audit(db, admin, "create_faculty", "faculty", faculty["user_id"])
    return faculty


@router.delete("/faculty/{faculty_id}")
async def delete_faculty(
    faculty_id: str,
    admin: UserContext = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Content the faculty authored stays; admins can still manage it"""
    await users_db.delete_user(db, faculty_id, UserRole.FACULTY)
    await log_audit(db, admin, "delete_faculty", "faculty", faculty_id)
    return {"faculty_id": faculty_id, "deleted": True}

# ============================================================================
# PLATFORM STATS
# ============================================================================

@router.get("/stats")
async def platform_stats(
    admin: UserContext = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    total_submissions = await db.submissions.count_documents({})
    passed = await db.submissions.count_documents({"status": SubmissionStatus.PASSED.value})

    return {
        "users": {
            role.value: await db.users.count_documents({"role": role.value})
            for role in UserRole
        },
        "problems": await db.problems.count_documents({}),
        "contests": await db.contests.count_documents({}),
        "assignments": await db.assignments.count_documents({}),
        "enrollments": await db.enrollments.count_documents({}),
        "submissions": {
            "total": total_submissions,
            "passed": passed,
            "pass_rate": round(passed / total_submissions * 100, 1) if total_submissions else 0.0
        }
    }
