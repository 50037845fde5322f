from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List

from classlab.assignments.database import list_assignments
from classlab.auth.permissions import UserContext, get_current_user
from classlab.dependencies import get_db
from classlab.participation import service
from classlab.participation.models import ScopeType, Standing
from classlab.participation.scoring import load_class_standing, load_standing
from classlab.users import database as users_db
from classlab.users.models import UserRole

router = APIRouter(prefix="/leaderboard", tags=["Leaderboards"])

# ==================== LEADERBOARD QUERIES ====================

async def class_standing_for(db: AsyncIOMotorDatabase, user: UserContext) -> List[Standing]:
    """
    Class leaderboard across a faculty's published assignments, covering
    every student that faculty added. Students see their own faculty's
    class; admins see everyone.
    """
    if user.is_admin:
        assignments = await list_assignments(db, published_only=True)
        roster = await users_db.list_users(db, UserRole.STUDENT)
    else:
        faculty_id = user.added_by if user.is_student else user.user_id
        if not faculty_id:
            return []
        assignments = await list_assignments(db, created_by=faculty_id, published_only=True)
        roster = await users_db.list_users(db, UserRole.STUDENT, added_by=faculty_id)

    return await load_class_standing(db, assignments, roster)

# ==================== ROUTES ====================

@router.get("/contests/{contest_id}", response_model=List[Standing])
async def contest_leaderboard(
    contest_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    contest = await service.load_viewable_scope(db, ScopeType.CONTEST, contest_id, user)
    return await load_standing(db, ScopeType.CONTEST, contest_id, scope=contest)


@router.get("/assignments/{assignment_id}", response_model=List[Standing])
async def assignment_leaderboard(
    assignment_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    assignment = await service.load_viewable_scope(db, ScopeType.ASSIGNMENT, assignment_id, user)
    return await load_standing(db, ScopeType.ASSIGNMENT, assignment_id, scope=assignment)


@router.get("/students", response_model=List[Standing])
async def class_leaderboard(
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await class_standing_for(db, user)
