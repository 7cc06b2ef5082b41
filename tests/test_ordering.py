# tests/test_ordering.py
from datetime import date

import pytest

from practice_tracker.errors import ValidationError
from practice_tracker.models import Attempt, Problem, Result, Series, Subject
from practice_tracker.ordering import (
    attempt_sort_key, check_problem_key, kind_rank, problem_label, problem_sort_key,
    renumber_sort_key, series_sort_key, subject_sort_key,
)


def test_subjects_sort_by_sort_order_then_name():
    subjects = [Subject(1, "B", 1), Subject(2, "C", 0), Subject(3, "A", 1)]
    assert [s.name for s in sorted(subjects, key=subject_sort_key)] == ["C", "A", "B"]


def test_series_sort_by_sort_order_then_name():
    series = [Series(1, 1, "2-1", 0), Series(2, 1, "1-1", 0), Series(3, 1, "0-9", 5)]
    assert [s.name for s in sorted(series, key=series_sort_key)] == ["1-1", "2-1", "0-9"]


def test_problems_sort_by_kind_rank_then_number_then_id():
    problems = [
        Problem(1, 1, "Drill"),
        Problem(2, 1, "Comprehensive", 1),
        Problem(3, 1, "Problem", 10),
        Problem(4, 1, "Problem", 2),
    ]
    ordered = sorted(problems, key=problem_sort_key)
    assert [p.id for p in ordered] == [4, 3, 2, 1]


def test_unknown_kind_sorts_last():
    assert kind_rank("Mystery") > kind_rank("Drill")


def test_unknown_kinds_fall_back_to_number_then_id():
    problems = [Problem(1, 1, "Alpha", 2), Problem(2, 1, "Zeta", 1), Problem(3, 1, "Drill")]
    assert [p.id for p in sorted(problems, key=problem_sort_key)] == [3, 2, 1]


def test_attempts_sort_in_history_order():
    attempts = [
        Attempt(3, 1, 2, date(2024, 1, 1), Result.GOOD),
        Attempt(1, 1, 1, date(2024, 2, 1), Result.POOR),
        Attempt(2, 1, 1, date(2024, 1, 15), Result.FAIR),
    ]
    assert [a.id for a in sorted(attempts, key=attempt_sort_key)] == [2, 1, 3]
    assert [a.id for a in sorted(attempts, key=renumber_sort_key)] == [3, 2, 1]


def test_problem_label():
    assert problem_label("Problem", 3) == "Problem 3"
    assert problem_label("Drill", None) == "Drill"


def test_check_problem_key_numbered_kind():
    assert check_problem_key("Problem", 3) == 3
    with pytest.raises(ValidationError):
        check_problem_key("Problem", None)
    with pytest.raises(ValidationError):
        check_problem_key("Problem", 0)
    with pytest.raises(ValidationError):
        check_problem_key("Problem", -2)


def test_check_problem_key_unnumbered_kind():
    assert check_problem_key("Drill", None) is None
    with pytest.raises(ValidationError):
        check_problem_key("Drill", 1)


def test_check_problem_key_unknown_kind():
    with pytest.raises(ValidationError):
        check_problem_key("Essay", 1)
