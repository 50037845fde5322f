from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from classlab.auth.permissions import UserContext, get_current_user
from classlab.dependencies import get_db
from classlab.judge.client import JudgeClient, get_judge
from classlab.judge.grader import run_preview
from classlab.participation.service import check_problem_visible, sealed_problem_ids
from classlab.problems import database as problems
from classlab.problems.models import Difficulty, RunRequest

router = APIRouter(prefix="/problems", tags=["Problems"])


@router.get("")
async def list_problems(
    search: Optional[str] = None,
    difficulty: Optional[Difficulty] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Students do not see problems sealed inside contests they have not started"""
    sealed = await sealed_problem_ids(db, user.user_id) if user.is_student else None
    return await problems.list_problems(
        db,
        search=search,
        difficulty=difficulty.value if difficulty else None,
        skip=skip,
        limit=limit,
        exclude_ids=sealed
    )


@router.get("/{problem_id}")
async def get_problem(
    problem_id: str,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Hidden test cases are stripped for everyone but the author and admins"""
    problem = await problems.get_problem(db, problem_id)
    await check_problem_visible(db, problem_id, user)
    if user.is_admin or problem.get("created_by") == user.user_id:
        return problem
    return problems.strip_hidden(problem)


@router.post("/{problem_id}/run")
async def run_problem(
    problem_id: str,
    data: RunRequest,
    user: UserContext = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge)
):
    """
    Try code against the visible test cases. Nothing is recorded.
    """
    await check_problem_visible(db, problem_id, user)
    test_cases = await problems.list_visible_test_cases(db, problem_id)
    results = await run_preview(judge, data.code, data.language, test_cases)

    return {
        "problem_id": problem_id,
        "passed": sum(1 for r in results if r["passed"]),
        "total": len(results),
        "results": results
    }
