from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab.assignments.database import list_assignments
from classlab.auth.permissions import UserContext, require_student
from classlab.common import utcnow
from classlab.contests.database import list_contests
from classlab.dependencies import get_db
from classlab.leaderboard.leaderboard_router import class_standing_for
from classlab.participation.models import ScopeState, SubmissionStatus

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats")
async def student_stats(
    student: UserContext = Depends(require_student),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Problems solved, class rank and what is coming up next"""
    solved = await db.submissions.distinct(
        "problem_id",
        {"student_id": student.user_id, "status": SubmissionStatus.PASSED.value}
    )
    total_submissions = await db.submissions.count_documents({"student_id": student.user_id})

    standings = await class_standing_for(db, student)
    rank = next((s.rank for s in standings if s.student_id == student.user_id), None)

    open_states = (ScopeState.UPCOMING.value, ScopeState.ACTIVE.value)
    contests = [
        c for c in await list_contests(db, published_only=True)
        if c["status"] in open_states
    ]
    assignments = [
        a for a in await list_assignments(db, created_by=student.added_by, published_only=True)
        if a["status"] in open_states
    ] if student.added_by else []

    return {
        "problems_solved": len(solved),
        "total_submissions": total_submissions,
        "class_rank": rank,
        "class_size": len(standings),
        "upcoming_contests": [
            {"contest_id": c["contest_id"], "title": c["title"], "start_time": c["start_time"],
             "end_time": c["end_time"], "status": c["status"]}
            for c in contests
        ],
        "pending_assignments": [
            {"assignment_id": a["assignment_id"], "title": a["title"], "due_date": a["due_date"],
             "status": a["status"]}
            for a in assignments
        ],
        "generated_at": utcnow()
    }
