from datetime import datetime, timedelta

from classlab.participation.scoring import compute_standing, problem_point_map

T0 = datetime(2025, 3, 1, 12, 0, 0)


def record(student_id, problem_id, status, minutes, seq=1):
    return {
        "student_id": student_id,
        "problem_id": problem_id,
        "status": status,
        "seq": seq,
        "submitted_at": T0 + timedelta(minutes=minutes)
    }


def enrollment(student_id, name=None):
    return {"student_id": student_id, "student_name": name or student_id}


def test_partial_solve_scores_only_passed_problem():
    points = {"P1": 100, "P2": 50}
    records = [
        record("S1", "P2", "PASSED", 5, seq=1),
        record("S1", "P1", "FAILED", 7, seq=2),
    ]

    [standing] = compute_standing(points, [enrollment("S1")], records)

    assert standing.total_points == 50
    assert standing.problems_solved == 1
    assert standing.rank == 1


def test_failed_resubmission_after_pass_keeps_problem_solved():
    points = {"P1": 10}
    records = [
        record("S1", "P1", "PASSED", 1, seq=1),
        record("S1", "P1", "FAILED", 2, seq=2),
    ]

    [standing] = compute_standing(points, [enrollment("S1")], records)
    assert standing.problems_solved == 1
    assert standing.total_points == 10


def test_repeated_passes_count_once():
    points = {"P1": 10}
    records = [record("S1", "P1", "PASSED", m, seq=m) for m in (1, 2, 3)]

    [standing] = compute_standing(points, [enrollment("S1")], records)
    assert standing.problems_solved == 1
    assert standing.total_points == 10


def test_earlier_last_submission_wins_tie():
    points = {"P1": 10}
    records = [
        record("S_LATE", "P1", "PASSED", 30),
        record("S_EARLY", "P1", "PASSED", 10),
    ]

    standings = compute_standing(points, [enrollment("S_LATE"), enrollment("S_EARLY")], records)

    assert [s.student_id for s in standings] == ["S_EARLY", "S_LATE"]
    assert [s.rank for s in standings] == [1, 2]


def test_zero_submission_enrollments_rank_last_with_zero_points():
    points = {"P1": 10}
    records = [record("S2", "P1", "FAILED", 3)]

    standings = compute_standing(points, [enrollment("S1"), enrollment("S2")], records)

    assert [s.student_id for s in standings] == ["S2", "S1"]
    assert standings[1].total_points == 0
    assert standings[1].last_submission_at is None


def test_student_id_breaks_remaining_ties():
    standings = compute_standing({"P1": 10}, [enrollment("S_B"), enrollment("S_A"), enrollment("S_C")], [])

    assert [s.student_id for s in standings] == ["S_A", "S_B", "S_C"]
    assert [s.rank for s in standings] == [1, 2, 3]


def test_points_outrank_problem_count():
    points = {"P1": 100, "P2": 10, "P3": 10}
    records = [
        record("S1", "P1", "PASSED", 50),
        record("S2", "P2", "PASSED", 1),
        record("S2", "P3", "PASSED", 2),
    ]

    standings = compute_standing(points, [enrollment("S1"), enrollment("S2")], records)
    assert standings[0].student_id == "S1"
    assert standings[1].problems_solved == 2


def test_problem_removed_from_scope_earns_nothing():
    records = [record("S1", "GONE", "PASSED", 1)]

    [standing] = compute_standing({"P1": 10}, [enrollment("S1")], records)
    assert standing.total_points == 0
    assert standing.problems_solved == 0
    assert standing.last_submission_at == T0 + timedelta(minutes=1)


def test_empty_inputs():
    assert compute_standing({}, [], []) == []


def test_point_map_prefers_scope_override():
    scope = {"problems": [{"problem_id": "P1", "points": 100}, {"problem_id": "P2", "points": None}]}
    problems = {"P1": {"points": 10}, "P2": {"points": 25}}

    assert problem_point_map(scope, problems) == {"P1": 100, "P2": 25}


def test_point_map_defaults_when_problem_has_no_points():
    scope = {"problems": [{"problem_id": "P1", "points": None}]}
    assert problem_point_map(scope, {"P1": {}}) == {"P1": 10}
