from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List

from classlab.auth.permissions import UserContext, get_current_user, require_student
from classlab.contests import database as contests
from classlab.dependencies import get_db
from classlab.judge.client import JudgeClient, get_judge
from classlab.participation import enrollment as enrollments
from classlab.participation import lifecycle
from classlab.participation import service
from classlab.participation.models import ProgressResponse, ScopeType, Standing, SubmitRequest
from classlab.participation.scoring import load_standing

router = APIRouter(prefix="/contests", tags=["Contests"])

# ==================== BROWSING ====================

@router.get("")
async def list_contests(
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Published contests, newest first"""
    return await contests.list_contests(db, published_only=True)


@router.get("/upcoming")
async def list_upcoming_contests(
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await contests.list_contests(db, published_only=True, upcoming_only=True)


@router.get("/{contest_id}")
async def get_contest(
    contest_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    contest = await service.load_viewable_scope(db, ScopeType.CONTEST, contest_id, user)
    return await service.describe_scope(db, ScopeType.CONTEST, contest, user)

# ==================== PARTICIPATION ====================

@router.post("/{contest_id}/join")
async def join_contest(
    contest_id: str,
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Register for a running contest. Repeat calls return the same enrollment."""
    return await enrollments.join(db, ScopeType.CONTEST, contest_id, student.user_id, student.name)


@router.post("/{contest_id}/start")
async def start_contest(
    contest_id: str,
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Open the personal timer. Repeat calls keep the original start."""
    enrollment = await enrollments.start(db, contest_id, student.user_id)
    contest = await contests.get_contest(db, contest_id)
    return {
        **enrollment,
        "personal_end": lifecycle.personal_end(contest, enrollment)
    }


@router.post("/{contest_id}/submit")
async def submit_contest_solution(
    contest_id: str,
    data: SubmitRequest,
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge)
):
    return await service.submit_solution(
        db, judge, ScopeType.CONTEST, contest_id,
        student.user_id, student.name,
        data.problem_id, data.language, data.code
    )


@router.get("/{contest_id}/progress", response_model=ProgressResponse)
async def contest_progress(
    contest_id: str,
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.get_progress(db, ScopeType.CONTEST, contest_id, student.user_id)


@router.get("/{contest_id}/leaderboard", response_model=List[Standing])
async def contest_leaderboard(
    contest_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    contest = await service.load_viewable_scope(db, ScopeType.CONTEST, contest_id, user)
    return await load_standing(db, ScopeType.CONTEST, contest_id, scope=contest)
