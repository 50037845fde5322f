import pytest

from classlab import errors
from classlab.judge.client import ExecutionResult
from classlab.participation import enrollment as enrollments
from classlab.participation import service
from classlab.participation.models import ScopeType
from classlab.participation.scoring import load_standing

from conftest import FakeJudge, insert_assignment, insert_contest, insert_problem


async def start_contest(db, contest, student_id, name=None):
    await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], student_id, name)
    return await enrollments.start(db, contest["contest_id"], student_id)


async def test_contest_submission_is_graded_and_recorded(db, judge):
    problem_id = await insert_problem(db, visible=1, hidden=2)
    contest = await insert_contest(db, [(problem_id, 100)])
    await start_contest(db, contest, "S1", "Ada")

    result = await service.submit_solution(
        db, judge, ScopeType.CONTEST, contest["contest_id"], "S1", "Ada", problem_id, "python", "echo"
    )

    assert result["status"] == "PASSED"
    assert (result["passed_tests"], result["total_tests"]) == (3, 3)
    assert result["failed_case"] is None
    assert await db.submissions.count_documents({"student_id": "S1"}) == 1


async def test_hidden_failure_is_not_revealed(db):
    problem_id = await insert_problem(db, visible=0, hidden=1)
    contest = await insert_contest(db, [(problem_id, None)])
    await start_contest(db, contest, "S1")

    result = await service.submit_solution(
        db, FakeJudge(), ScopeType.CONTEST, contest["contest_id"], "S1", None, problem_id, "python", "WRONG"
    )

    assert result["status"] == "FAILED"
    assert result["failed_case"]["is_hidden"] is True
    assert "expected_output" not in result["failed_case"]
    assert "input" not in result["failed_case"]


class StderrEchoJudge(FakeJudge):
    """Fails every case and writes its stdin to stderr"""

    async def execute(self, source_code, language, stdin=""):
        self.calls.append(stdin)
        return ExecutionResult(stdout="", stderr=stdin, status_id=11)


async def test_hidden_failure_does_not_echo_stderr(db):
    problem_id = await insert_problem(db, visible=0, hidden=1)
    contest = await insert_contest(db, [(problem_id, None)])
    await start_contest(db, contest, "S1")

    result = await service.submit_solution(
        db, StderrEchoJudge(), ScopeType.CONTEST, contest["contest_id"], "S1", None, problem_id, "python", "leak"
    )

    assert result["failed_case"] == {"index": 0, "is_hidden": True, "compile_error": False, "error": None}
    assert "hidden-0" not in str(result)


async def test_hidden_compile_error_keeps_compiler_message(db, judge):
    problem_id = await insert_problem(db, visible=0, hidden=1)
    contest = await insert_contest(db, [(problem_id, None)])
    await start_contest(db, contest, "S1")

    result = await service.submit_solution(
        db, judge, ScopeType.CONTEST, contest["contest_id"], "S1", None, problem_id, "python", "COMPILE_ERROR"
    )

    assert result["failed_case"]["compile_error"] is True
    assert result["failed_case"]["error"] == "SyntaxError: invalid syntax"


async def test_visible_failure_shows_the_case(db, judge):
    problem_id = await insert_problem(db, visible=1, hidden=0)
    contest = await insert_contest(db, [(problem_id, None)])
    await start_contest(db, contest, "S1")

    result = await service.submit_solution(
        db, judge, ScopeType.CONTEST, contest["contest_id"], "S1", None, problem_id, "python", "WRONG"
    )

    assert result["failed_case"]["expected_output"] == "visible-0"
    assert result["failed_case"]["actual_output"] == "garbage"


async def test_unstarted_contest_fails_before_calling_judge(db, judge):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)])
    await enrollments.join(db, ScopeType.CONTEST, contest["contest_id"], "S1")

    with pytest.raises(errors.StateConflict) as exc:
        await service.submit_solution(
            db, judge, ScopeType.CONTEST, contest["contest_id"], "S1", None, problem_id, "python", "echo"
        )

    assert exc.value.reason == "SubmissionWindowClosed"
    assert judge.calls == []


async def test_contest_submit_without_join(db, judge):
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)])

    with pytest.raises(errors.StateConflict) as exc:
        await service.submit_solution(
            db, judge, ScopeType.CONTEST, contest["contest_id"], "S1", None, problem_id, "python", "echo"
        )
    assert exc.value.reason == "NotEnrolled"


async def test_judge_timeout_records_nothing(db, monkeypatch):
    monkeypatch.setattr("classlab.config.JUDGE_TIMEOUT_SECONDS", 0.05)
    problem_id = await insert_problem(db)
    contest = await insert_contest(db, [(problem_id, None)])
    await start_contest(db, contest, "S1")

    with pytest.raises(errors.JudgeTimeout):
        await service.submit_solution(
            db, FakeJudge(delay=1), ScopeType.CONTEST, contest["contest_id"], "S1", None, problem_id, "python", "SLOW"
        )

    assert await db.submissions.count_documents({}) == 0


async def test_assignment_submit_joins_automatically(db, judge):
    problem_id = await insert_problem(db)
    assignment = await insert_assignment(db, [(problem_id, None)])

    result = await service.submit_solution(
        db, judge, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1", "Ada", problem_id, "python", "echo"
    )

    assert result["status"] == "PASSED"
    enrollment = await enrollments.get_enrollment(db, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1")
    assert enrollment["student_name"] == "Ada"


async def test_assignment_past_due_rejects_without_enrolling(db, judge):
    problem_id = await insert_problem(db)
    assignment = await insert_assignment(db, [(problem_id, None)], starts_in_minutes=-120, due_in_minutes=-5)

    with pytest.raises(errors.StateConflict) as exc:
        await service.submit_solution(
            db, judge, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1", None, problem_id, "python", "echo"
        )

    assert exc.value.reason == "SubmissionWindowClosed"
    assert await db.enrollments.count_documents({}) == 0


async def test_problem_not_in_scope(db, judge):
    problem_id = await insert_problem(db)
    other = await insert_problem(db)
    assignment = await insert_assignment(db, [(problem_id, None)])

    with pytest.raises(errors.NotFound):
        await service.submit_solution(
            db, judge, ScopeType.ASSIGNMENT, assignment["assignment_id"], "S1", None, other, "python", "echo"
        )


async def test_partial_contest_scores_fifty_of_one_fifty(db, judge):
    hard = await insert_problem(db, title="Hard")
    easy = await insert_problem(db, title="Easy")
    contest = await insert_contest(db, [(hard, 100), (easy, 50)])
    await start_contest(db, contest, "S1", "Ada")
    await start_contest(db, contest, "S2", "Grace")

    cid = contest["contest_id"]
    await service.submit_solution(db, judge, ScopeType.CONTEST, cid, "S1", "Ada", easy, "python", "echo")
    await service.submit_solution(db, judge, ScopeType.CONTEST, cid, "S1", "Ada", hard, "python", "WRONG")

    standings = await load_standing(db, ScopeType.CONTEST, cid)

    assert [s.student_id for s in standings] == ["S1", "S2"]
    assert standings[0].total_points == 50
    assert standings[0].problems_solved == 1
    assert standings[1].total_points == 0


async def test_progress_reports_effective_status(db, judge):
    p1 = await insert_problem(db, points=20)
    p2 = await insert_problem(db)
    assignment = await insert_assignment(db, [(p1, None), (p2, 5)])
    aid = assignment["assignment_id"]

    await service.submit_solution(db, judge, ScopeType.ASSIGNMENT, aid, "S1", None, p1, "python", "echo")
    await service.submit_solution(db, judge, ScopeType.ASSIGNMENT, aid, "S1", None, p1, "python", "WRONG")

    progress = await service.get_progress(db, ScopeType.ASSIGNMENT, aid, "S1")

    assert progress["total_points"] == 20
    assert progress["problems_solved"] == 1
    by_id = {p["problem_id"]: p for p in progress["problems"]}
    assert by_id[p1]["status"] == "PASSED"
    assert by_id[p1]["attempts"] == 2
    assert by_id[p2]["status"] == "NOT_ATTEMPTED"
    assert by_id[p2]["points"] == 5


async def test_contest_problems_stay_sealed_until_start(db):
    problem_id = await insert_problem(db)
    practice = await insert_problem(db, title="Practice")
    contest = await insert_contest(db, [(problem_id, None)])

    assert await service.sealed_problem_ids(db, "S1") == {problem_id}

    await start_contest(db, contest, "S1")
    assert await service.sealed_problem_ids(db, "S1") == set()
    assert practice not in await service.sealed_problem_ids(db, "S2")


async def test_problem_shared_with_open_assignment_is_not_sealed(db):
    problem_id = await insert_problem(db)
    await insert_contest(db, [(problem_id, None)], starts_in_minutes=30)
    await insert_assignment(db, [(problem_id, None)])

    assert await service.sealed_problem_ids(db, "S1") == set()


async def test_finished_contest_unseals_its_problems(db):
    problem_id = await insert_problem(db)
    await insert_contest(db, [(problem_id, None)], starts_in_minutes=-120, duration_minutes=60)

    assert await service.sealed_problem_ids(db, "S1") == set()
