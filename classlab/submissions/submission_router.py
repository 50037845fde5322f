from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from classlab import errors
from classlab.auth.permissions import UserContext, get_current_user, require_student
from classlab.dependencies import get_db
from classlab.participation.enrollment import load_scope
from classlab.participation.models import ScopeType

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.get("/my")
async def my_submissions(
    scope_type: Optional[ScopeType] = None,
    scope_id: Optional[str] = None,
    problem_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Own submission history, newest first, without source code"""
    query = {"student_id": student.user_id}
    if scope_type:
        query["scope_type"] = scope_type.value
    if scope_id:
        query["scope_id"] = scope_id
    if problem_id:
        query["problem_id"] = problem_id

    cursor = db.submissions.find(query, {"_id": 0, "code": 0}).sort("submitted_at", -1).skip(skip).limit(limit)
    return await cursor.to_list(length=limit)


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Full record including code

    Visible to the submitting student, the faculty owning the scope and admins
    """
    record = await db.submissions.find_one({"submission_id": submission_id}, {"_id": 0})
    if not record:
        raise errors.NotFound("Submission not found")

    if user.is_admin or record["student_id"] == user.user_id:
        return record

    if user.is_faculty:
        scope = await load_scope(db, record["scope_type"], record["scope_id"])
        if scope.get("created_by") == user.user_id:
            return record

    raise errors.PermissionDenied("Not authorized to view this submission")
