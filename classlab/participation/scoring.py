"""
Scoring & leaderboard engine

compute_standing is the single ranking routine behind every leaderboard.
It is pure: the async loaders only gather its inputs.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab.participation.enrollment import list_enrollments, load_scope
from classlab.participation.models import ScopeType, Standing
from classlab.participation.tracker import solved_problem_ids
from classlab.problems.database import get_problems

DEFAULT_PROBLEM_POINTS = 10


def problem_point_map(scope: dict, problems_by_id: Dict[str, dict]) -> Dict[str, int]:
    """Per-problem points: the scope's override, else the problem's own points"""
    points = {}
    for entry in scope.get("problems", []):
        problem_id = entry["problem_id"]
        if entry.get("points") is not None:
            points[problem_id] = entry["points"]
        else:
            problem = problems_by_id.get(problem_id, {})
            points[problem_id] = problem.get("points", DEFAULT_PROBLEM_POINTS)
    return points


def _sort_key(row: dict):
    last = row["last_submission_at"]
    return (
        -row["total_points"],
        -row["problems_solved"],
        last is None,
        last or datetime.min,
        row["student_id"]
    )


def compute_standing(
    problem_points: Dict[str, int],
    enrollments: Iterable[dict],
    records: Iterable[dict]
) -> List[Standing]:
    """
    Rank every enrollment.

    Order: total_points desc, problems_solved desc, last_submission_at asc
    (never-submitted last), student_id asc. Ranks are 1..n with no ties.
    Solved problems no longer in problem_points earn nothing.
    """
    by_student = defaultdict(list)
    for record in records:
        by_student[record["student_id"]].append(record)

    rows = []
    seen = set()
    for enrollment in enrollments:
        student_id = enrollment["student_id"]
        if student_id in seen:
            continue
        seen.add(student_id)

        student_records = by_student.get(student_id, [])
        solved = solved_problem_ids(student_records) & set(problem_points)
        timestamps = [r["submitted_at"] for r in student_records if r.get("submitted_at")]

        rows.append({
            "student_id": student_id,
            "student_name": enrollment.get("student_name"),
            "total_points": sum(problem_points[p] for p in solved),
            "problems_solved": len(solved),
            "last_submission_at": max(timestamps) if timestamps else None
        })

    rows.sort(key=_sort_key)
    return [Standing(rank=index, **row) for index, row in enumerate(rows, start=1)]

# ==================== LOADERS ====================

async def load_standing(
    db: AsyncIOMotorDatabase,
    scope_type: ScopeType,
    scope_id: str,
    scope: Optional[dict] = None
) -> List[Standing]:
    scope_type = ScopeType(scope_type)
    if scope is None:
        scope = await load_scope(db, scope_type, scope_id)

    problem_ids = [p["problem_id"] for p in scope.get("problems", [])]
    problems_by_id = await get_problems(db, problem_ids)
    enrollments = await list_enrollments(db, scope_type, scope_id)

    cursor = db.submissions.find(
        {"scope_type": scope_type.value, "scope_id": scope_id},
        {"_id": 0, "code": 0}
    )
    records = await cursor.to_list(length=None)

    return compute_standing(problem_point_map(scope, problems_by_id), enrollments, records)


async def load_class_standing(
    db: AsyncIOMotorDatabase,
    assignments: List[dict],
    roster: Iterable[dict] = ()
) -> List[Standing]:
    """
    One leaderboard across several assignments. Each (assignment, problem)
    pair scores separately, so the same problem in two assignments counts twice.
    Students on the roster who never joined anything rank with zero points.
    """
    problem_ids = {p["problem_id"] for a in assignments for p in a.get("problems", [])}
    problems_by_id = await get_problems(db, list(problem_ids))

    problem_points = {}
    for assignment in assignments:
        for problem_id, points in problem_point_map(assignment, problems_by_id).items():
            problem_points[f"{assignment['assignment_id']}/{problem_id}"] = points

    assignment_ids = [a["assignment_id"] for a in assignments]
    enrollments = await db.enrollments.find(
        {"scope_type": ScopeType.ASSIGNMENT.value, "scope_id": {"$in": assignment_ids}},
        {"_id": 0}
    ).to_list(length=None)
    raw_records = await db.submissions.find(
        {"scope_type": ScopeType.ASSIGNMENT.value, "scope_id": {"$in": assignment_ids}},
        {"_id": 0, "code": 0}
    ).to_list(length=None)

    records = [
        dict(record, problem_id=f"{record['scope_id']}/{record['problem_id']}")
        for record in raw_records
    ]
    participants = enrollments + [
        {"student_id": student["user_id"], "student_name": student.get("name")}
        for student in roster
    ]
    return compute_standing(problem_points, participants, records)
