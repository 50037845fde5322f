from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List, Optional

from classlab.assignments.database import list_assignments, with_status as assignment_status
from classlab.assignments.models import AssignmentCreate, AssignmentUpdate
from classlab.auth.permissions import UserContext, require_faculty
from classlab.contests.database import list_contests, with_status as contest_status
from classlab.contests.models import ContestCreate, ContestUpdate, PublishRequest
from classlab.dependencies import get_db
from classlab.faculty import faculty_service as service
from classlab.faculty.common_audit import get_audit_trail
from classlab.participation.models import ScopeType, Standing, SubmissionStatus
from classlab.participation.scoring import load_standing
from classlab.problems.database import list_problems
from classlab.problems.models import ProblemCreate, ProblemUpdate
from classlab.users.models import PasswordChange, StudentCreate, UserResponse, UserUpdate

router = APIRouter(prefix="/faculty", tags=["Faculty Management"])

# ==================== PROBLEMS ====================

@router.get("/problems")
async def get_my_problems(
    search: Optional[str] = None,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await list_problems(db, created_by=service.owner_filter(faculty), search=search, limit=500)


@router.post("/problems", status_code=201)
async def create_problem(
    data: ProblemCreate,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.create_problem(db, faculty, data.dict())


@router.get("/problems/{problem_id}")
async def get_problem(
    problem_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Includes hidden test cases"""
    return await service.get_owned_problem(db, problem_id, faculty)


@router.put("/problems/{problem_id}")
async def update_problem(
    problem_id: str,
    data: ProblemUpdate,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_problem(db, faculty, problem_id, data.dict(exclude_none=True))


@router.delete("/problems/{problem_id}")
async def delete_problem(
    problem_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.delete_problem(db, faculty, problem_id)

# ==================== CONTESTS ====================

@router.get("/contests")
async def get_my_contests(
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await list_contests(db, created_by=service.owner_filter(faculty))


@router.post("/contests", status_code=201)
async def create_contest(
    data: ContestCreate,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.create_contest(db, faculty, data.dict())


@router.get("/contests/{contest_id}")
async def get_contest(
    contest_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return contest_status(await service.get_owned_contest(db, contest_id, faculty))


@router.put("/contests/{contest_id}")
async def update_contest(
    contest_id: str,
    data: ContestUpdate,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Schedule and problems are frozen once the contest has opened"""
    return await service.update_contest(db, faculty, contest_id, data.dict(exclude_none=True))


@router.patch("/contests/{contest_id}/publish")
async def publish_contest(
    contest_id: str,
    data: PublishRequest,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.publish_contest(db, faculty, contest_id, data.is_published)


@router.delete("/contests/{contest_id}")
async def delete_contest(
    contest_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Also deletes every enrollment and submission of the contest"""
    return await service.delete_contest(db, faculty, contest_id)


@router.get("/contests/{contest_id}/submissions")
async def get_contest_submissions(
    contest_id: str,
    status: Optional[SubmissionStatus] = None,
    student_id: Optional[str] = None,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.get_owned_contest(db, contest_id, faculty)
    return await service.list_scope_submissions(db, ScopeType.CONTEST, contest_id, status, student_id)


@router.get("/contests/{contest_id}/leaderboard", response_model=List[Standing])
async def get_contest_leaderboard(
    contest_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    contest = await service.get_owned_contest(db, contest_id, faculty)
    return await load_standing(db, ScopeType.CONTEST, contest_id, scope=contest)

# ==================== ASSIGNMENTS ====================

@router.get("/assignments")
async def get_my_assignments(
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await list_assignments(db, created_by=service.owner_filter(faculty))


@router.post("/assignments", status_code=201)
async def create_assignment(
    data: AssignmentCreate,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.create_assignment(db, faculty, data.dict())


@router.get("/assignments/{assignment_id}")
async def get_assignment(
    assignment_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return assignment_status(await service.get_owned_assignment(db, assignment_id, faculty))


@router.put("/assignments/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    data: AssignmentUpdate,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_assignment(db, faculty, assignment_id, data.dict(exclude_none=True))


@router.patch("/assignments/{assignment_id}/publish")
async def publish_assignment(
    assignment_id: str,
    data: PublishRequest,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.publish_assignment(db, faculty, assignment_id, data.is_published)


@router.delete("/assignments/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Also deletes every enrollment and submission of the assignment"""
    return await service.delete_assignment(db, faculty, assignment_id)


@router.get("/assignments/{assignment_id}/submissions")
async def get_assignment_submissions(
    assignment_id: str,
    status: Optional[SubmissionStatus] = None,
    student_id: Optional[str] = None,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.get_owned_assignment(db, assignment_id, faculty)
    return await service.list_scope_submissions(db, ScopeType.ASSIGNMENT, assignment_id, status, student_id)

# ==================== STUDENTS ====================

@router.get("/students", response_model=List[UserResponse])
async def get_my_students(
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.list_students(db, faculty)


@router.post("/students", response_model=UserResponse, status_code=201)
async def create_student(
    data: StudentCreate,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.create_student(db, faculty, data.dict())


@router.put("/students/{student_id}", response_model=UserResponse)
async def update_student(
    student_id: str,
    data: UserUpdate,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_student(db, faculty, student_id, data.dict(exclude_none=True))


@router.delete("/students/{student_id}")
async def delete_student(
    student_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.delete_student(db, faculty, student_id)


@router.post("/students/{student_id}/reset-password")
async def reset_student_password(
    student_id: str,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.reset_student_password(db, faculty, student_id)

# ==================== ACCOUNT ====================

@router.put("/change-password")
async def change_password(
    data: PasswordChange,
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.change_own_password(db, faculty, data.current_password, data.new_password)

# ==================== DASHBOARD ====================

@router.get("/dashboard")
async def get_dashboard(
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.get_dashboard_stats(db, faculty)


@router.get("/audit-logs")
async def get_audit_logs(
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    faculty: UserContext = Depends(require_faculty),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await get_audit_trail(
        db,
        actor_user_id=service.owner_filter(faculty),
        target_type=target_type,
        target_id=target_id,
        limit=limit
    )
