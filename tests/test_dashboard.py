# tests/test_dashboard.py
from datetime import date, datetime

from practice_tracker.attempts import insert_attempt, record_attempt
from practice_tracker.dashboard import attempt_matrix, group_by_due, list_due, list_upcoming
from practice_tracker.store import add_series, add_subject, get_or_create_problem, move_subject

TODAY = date(2024, 6, 20)


def _setup(db):
    """Two subjects, two series in the first, with a spread of due dates."""
    a = add_subject(db, "A")
    b = add_subject(db, "B")
    a1 = add_series(db, a.id, "1-1")
    a2 = add_series(db, a.id, "1-2")
    b1 = add_series(db, b.id, "1-1")
    # due 2024-06-15 (5 days overdue)
    record_attempt(db, a1.id, "Problem", 1, "2024-06-08", "poor")
    # due 2024-06-18 (2 days overdue)
    record_attempt(db, a1.id, "Problem", 2, "2024-06-11", "poor")
    # due 2024-06-20 (due today)
    record_attempt(db, a2.id, "Problem", 1, "2024-06-06", "fair")
    # due 2024-06-10 (10 days overdue), other subject
    record_attempt(db, b1.id, "Drill", None, "2024-06-03", "poor")
    # due 2024-06-22 and 2024-06-27 (upcoming)
    record_attempt(db, a2.id, "Problem", 2, "2024-06-15", "poor")
    record_attempt(db, b1.id, "Problem", 1, "2024-06-15", "poor")
    record_attempt(db, a1.id, "Comprehensive", 1, "2024-06-13", "fair")
    # due 2024-06-28 (outside the 7 day horizon)
    record_attempt(db, a1.id, "Problem", 3, "2024-06-21", "poor")
    # mastered
    record_attempt(db, a1.id, "Problem", 4, "2024-01-01", "good")
    # never attempted
    get_or_create_problem(db, a1.id, "Problem", 5)
    return a, b


def test_list_due_order(db):
    _setup(db)
    rows = list_due(db, today=TODAY)
    assert [(r.subject_name, r.series_name, r.label, r.overdue_days) for r in rows] == [
        ("A", "1-1", "Problem 1", 5),
        ("A", "1-1", "Problem 2", 2),
        ("A", "1-2", "Problem 1", 0),
        ("B", "1-1", "Drill", 10),
    ]


def test_list_due_follows_subject_order(db):
    a, b = _setup(db)
    move_subject(db, b.id, -1)
    rows = list_due(db, today=TODAY)
    assert rows[0].subject_name == "B"


def test_list_due_scoped_to_subject(db):
    a, b = _setup(db)
    rows = list_due(db, b.id, today=TODAY)
    assert [r.label for r in rows] == ["Drill"]


def test_list_upcoming_order(db):
    _setup(db)
    rows = list_upcoming(db, today=TODAY)
    assert [(r.next_due.isoformat(), r.subject_name, r.series_name, r.label) for r in rows] == [
        ("2024-06-22", "A", "1-2", "Problem 2"),
        ("2024-06-22", "B", "1-1", "Problem 1"),
        ("2024-06-27", "A", "1-1", "Comprehensive 1"),
    ]


def test_list_upcoming_horizon(db):
    _setup(db)
    rows = list_upcoming(db, horizon_days=2, today=TODAY)
    assert {r.next_due for r in rows} == {date(2024, 6, 22)}
    rows = list_upcoming(db, horizon_days=8, today=TODAY)
    assert date(2024, 6, 28) in {r.next_due for r in rows}


def test_group_by_due(db):
    _setup(db)
    groups = group_by_due(list_upcoming(db, today=TODAY))
    assert [(due.isoformat(), len(rows)) for due, rows in groups] == [
        ("2024-06-22", 2), ("2024-06-27", 1),
    ]


def test_empty_views(db):
    assert list_due(db, today=TODAY) == []
    assert list_upcoming(db, today=TODAY) == []


def test_attempt_matrix(db):
    s = add_subject(db, "S")
    series = add_series(db, s.id, "1-1")
    pid = get_or_create_problem(db, series.id, "Problem", 1)
    for n in range(1, 7):
        insert_attempt(db, pid, n, date(2024, 6, n), "poor")
    get_or_create_problem(db, series.id, "Drill")
    grid = attempt_matrix(db, series.id)
    assert grid["columns"] == [1, 2, 3, 4, 5, 6]
    assert [r["label"] for r in grid["rows"]] == ["Problem 1", "Drill"]
    assert grid["rows"][0]["cells"][6].done_date == date(2024, 6, 6)
    assert grid["rows"][1]["cells"] == {}


def test_attempt_matrix_minimum_columns(db):
    s = add_subject(db, "S")
    series = add_series(db, s.id, "1-1")
    assert attempt_matrix(db, series.id) == {"columns": [1, 2, 3, 4, 5], "rows": []}


def test_due_view_after_recording_with_a_datetime(db):
    s = add_subject(db, "S")
    series = add_series(db, s.id, "1-1")
    record_attempt(db, series.id, "Problem", 1, datetime(2024, 6, 1, 9, 0), "poor")
    rows = list_due(db, today=date(2024, 6, 10))
    assert [(r.label, r.next_due, r.overdue_days) for r in rows] == [("Problem 1", date(2024, 6, 8), 2)]
