import asyncio
from datetime import timedelta

import pytest

from async_mongo import AsyncDatabase
from classlab.common import generate_id, utcnow
from classlab.judge.client import ExecutionResult, JudgeClient
from classlab.system.database_setup import create_indexes


class FakeJudge(JudgeClient):
    """
    Echo judge: a program prints its stdin back.
    Source containing WRONG prints garbage, COMPILE_ERROR fails to build,
    SLOW sleeps before answering.
    """

    name = "fake"
    languages = {"python": "python", "cpp": "cpp", "java": "java", "javascript": "javascript", "c": "c"}

    def __init__(self, delay: float = 0.5):
        super().__init__("http://judge.test")
        self.calls = []
        self.delay = delay

    async def execute(self, source_code: str, language: str, stdin: str = "") -> ExecutionResult:
        self.language_key(language)
        self.calls.append(stdin)

        if "SLOW" in source_code:
            await asyncio.sleep(self.delay)
        if "COMPILE_ERROR" in source_code:
            return ExecutionResult(compile_output="SyntaxError: invalid syntax", status_id=6)
        if "WRONG" in source_code:
            return ExecutionResult(stdout="garbage\n", status_id=4)
        return ExecutionResult(stdout=f"{stdin}\n", status_id=3)

    async def ping(self) -> bool:
        return True


@pytest.fixture
async def db():
    database = AsyncDatabase()
    await create_indexes(database)
    return database


@pytest.fixture
def judge():
    return FakeJudge()


async def insert_problem(db, points=10, visible=1, hidden=1, title="Echo"):
    problem_id = generate_id("PRB")
    cases = [
        {"input": f"visible-{i}", "expected_output": f"visible-{i}", "is_hidden": False}
        for i in range(visible)
    ] + [
        {"input": f"hidden-{i}", "expected_output": f"hidden-{i}", "is_hidden": True}
        for i in range(hidden)
    ]
    await db.problems.insert_one({
        "problem_id": problem_id,
        "title": title,
        "description": "Print the input",
        "difficulty": "Easy",
        "points": points,
        "test_cases": cases,
        "created_by": "USR_FACULTY",
        "created_at": utcnow()
    })
    return problem_id


async def insert_contest(db, problems, starts_in_minutes=-10, duration_minutes=60, published=True):
    """problems: list of (problem_id, points | None)"""
    start = utcnow() + timedelta(minutes=starts_in_minutes)
    contest = {
        "contest_id": generate_id("CON"),
        "title": "Weekly Contest",
        "description": "",
        "start_time": start,
        "duration_minutes": duration_minutes,
        "end_time": start + timedelta(minutes=duration_minutes),
        "problems": [{"problem_id": pid, "points": pts} for pid, pts in problems],
        "is_published": published,
        "created_by": "USR_FACULTY",
        "created_at": utcnow()
    }
    await db.contests.insert_one(contest)
    contest.pop("_id", None)
    return contest


async def insert_assignment(db, problems, starts_in_minutes=-10, due_in_minutes=60, published=True):
    assignment = {
        "assignment_id": generate_id("ASG"),
        "title": "Homework 1",
        "description": "",
        "start_time": utcnow() + timedelta(minutes=starts_in_minutes),
        "due_date": utcnow() + timedelta(minutes=due_in_minutes),
        "problems": [{"problem_id": pid, "points": pts} for pid, pts in problems],
        "is_published": published,
        "created_by": "USR_FACULTY",
        "created_at": utcnow()
    }
    await db.assignments.insert_one(assignment)
    assignment.pop("_id", None)
    return assignment
