from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List

from classlab.assignments import database as assignments
from classlab.auth.permissions import UserContext, get_current_user, require_student
from classlab.dependencies import get_db
from classlab.judge.client import JudgeClient, get_judge
from classlab.participation import enrollment as enrollments
from classlab.participation import service
from classlab.participation.models import ProgressResponse, ScopeType, Standing, SubmitRequest
from classlab.participation.scoring import load_standing

router = APIRouter(prefix="/assignments", tags=["Assignments"])


@router.get("")
async def list_assignments(
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Students see the published assignments of the faculty who added them
    """
    if user.is_student:
        return await assignments.list_assignments(db, created_by=user.added_by, published_only=True)
    if user.is_admin:
        return await assignments.list_assignments(db)
    return await assignments.list_assignments(db, created_by=user.user_id)


@router.get("/{assignment_id}")
async def get_assignment(
    assignment_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    assignment = await service.load_viewable_scope(db, ScopeType.ASSIGNMENT, assignment_id, user)
    return await service.describe_scope(db, ScopeType.ASSIGNMENT, assignment, user)


@router.post("/{assignment_id}/join")
async def join_assignment(
    assignment_id: str,
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await enrollments.join(db, ScopeType.ASSIGNMENT, assignment_id, student.user_id, student.name)


@router.post("/{assignment_id}/submit")
async def submit_assignment_solution(
    assignment_id: str,
    data: SubmitRequest,
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge)
):
    """First submission enrolls the student"""
    return await service.submit_solution(
        db, judge, ScopeType.ASSIGNMENT, assignment_id,
        student.user_id, student.name,
        data.problem_id, data.language, data.code
    )


@router.get("/{assignment_id}/progress", response_model=ProgressResponse)
async def assignment_progress(
    assignment_id: str,
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.get_progress(db, ScopeType.ASSIGNMENT, assignment_id, student.user_id)


@router.get("/{assignment_id}/leaderboard", response_model=List[Standing])
async def assignment_leaderboard(
    assignment_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    assignment = await service.load_viewable_scope(db, ScopeType.ASSIGNMENT, assignment_id, user)
    return await load_standing(db, ScopeType.ASSIGNMENT, assignment_id, scope=assignment)
