"""Due, upcoming and matrix views built from derived problem status."""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from itertools import groupby
from typing import Optional

from practice_tracker.config import MATRIX_MIN_COLUMNS, UPCOMING_HORIZON_DAYS
from practice_tracker.db import get_connection
from practice_tracker.models import Attempt, Problem, Series, State, Subject
from practice_tracker.ordering import (
    attempt_sort_key, name_key, problem_label, problem_sort_key, series_sort_key, subject_sort_key,
)
from practice_tracker.status import derive_status


@dataclass
class DueRow:
    subject_id: int
    subject_name: str
    series_id: int
    series_name: str
    problem_id: int
    label: str
    last_no: int
    last_date: date
    next_due: date
    overdue_days: int = 0
    subject_rank: int = 0
    series_rank: int = 0


def _scope_rows(
    db_path: str,
    subject_id: Optional[int],
    today: date,
    horizon_days: int,
    state: State,
) -> list[DueRow]:
    """Status rows in the given state for one subject, or every subject when None."""
    conn = get_connection(db_path)
    subjects = sorted(
        (Subject.from_row(r) for r in conn.execute("SELECT * FROM subjects").fetchall()),
        key=subject_sort_key,
    )
    series = [Series.from_row(r) for r in conn.execute("SELECT * FROM series").fetchall()]
    problems = [Problem.from_row(r) for r in conn.execute("SELECT * FROM problems").fetchall()]
    attempts = defaultdict(list)
    for r in conn.execute("SELECT * FROM attempts").fetchall():
        attempts[r["problem_id"]].append(Attempt.from_row(r))
    conn.close()

    subject_rank = {s.id: i for i, s in enumerate(subjects)}
    subject_names = {s.id: s.name for s in subjects}
    series_by_id = {s.id: s for s in series}
    series_rank = {}
    for _, siblings in groupby(sorted(series, key=lambda s: s.subject_id), key=lambda s: s.subject_id):
        for i, s in enumerate(sorted(siblings, key=series_sort_key)):
            series_rank[s.id] = i

    rows = []
    for problem in problems:
        parent = series_by_id[problem.series_id]
        if subject_id is not None and parent.subject_id != subject_id:
            continue
        status = derive_status(problem.id, attempts[problem.id], today, horizon_days)
        if status.state != state:
            continue
        rows.append(DueRow(
            subject_id=parent.subject_id,
            subject_name=subject_names.get(parent.subject_id, ""),
            series_id=parent.id,
            series_name=parent.name,
            problem_id=problem.id,
            label=problem_label(problem.kind, problem.number),
            last_no=status.last_no,
            last_date=status.last_date,
            next_due=status.next_due,
            overdue_days=status.overdue_days,
            subject_rank=subject_rank.get(parent.subject_id, len(subjects)),
            series_rank=series_rank[parent.id],
        ))
    return rows


def list_due(db_path: str, subject_id: Optional[int] = None, today: Optional[date] = None) -> list[DueRow]:
    """Overdue problems, most overdue first within each subject and series."""
    today = today or date.today()
    rows = _scope_rows(db_path, subject_id, today, UPCOMING_HORIZON_DAYS, State.OVERDUE)
    rows.sort(key=lambda r: (
        r.subject_rank, r.series_rank, -r.overdue_days, r.next_due, name_key(r.label),
    ))
    return rows


def list_upcoming(
    db_path: str,
    subject_id: Optional[int] = None,
    horizon_days: int = UPCOMING_HORIZON_DAYS,
    today: Optional[date] = None,
) -> list[DueRow]:
    """Problems falling due after today and within the horizon, soonest first."""
    today = today or date.today()
    rows = _scope_rows(db_path, subject_id, today, horizon_days, State.UPCOMING)
    rows.sort(key=lambda r: (r.next_due, r.subject_rank, r.series_rank, name_key(r.label)))
    return rows


def group_by_due(rows: list[DueRow]) -> list[tuple[date, list[DueRow]]]:
    """Bucket already-sorted upcoming rows by their due date."""
    return [(due, list(bucket)) for due, bucket in groupby(rows, key=lambda r: r.next_due)]


def attempt_matrix(db_path: str, series_id: int) -> dict:
    """Problem × attempt-number grid for one series.

    Returns {"columns": [1..n], "rows": [{"problem": Problem, "label": str,
    "cells": {attempt_no: Attempt}}]} with at least MATRIX_MIN_COLUMNS columns.
    """
    conn = get_connection(db_path)
    problems = sorted(
        (Problem.from_row(r) for r in conn.execute(
            "SELECT * FROM problems WHERE series_id = ?", (series_id,)
        ).fetchall()),
        key=problem_sort_key,
    )
    attempts = defaultdict(list)
    for r in conn.execute(
        """SELECT a.* FROM attempts a JOIN problems p ON a.problem_id = p.id
        WHERE p.series_id = ?""",
        (series_id,),
    ).fetchall():
        attempts[r["problem_id"]].append(Attempt.from_row(r))
    conn.close()

    max_no = max((a.attempt_no for atts in attempts.values() for a in atts), default=0)
    rows = []
    for problem in problems:
        history = sorted(attempts[problem.id], key=attempt_sort_key)
        rows.append({
            "problem": problem,
            "label": problem_label(problem.kind, problem.number),
            "cells": {a.attempt_no: a for a in history},
        })
    return {"columns": list(range(1, max(max_no, MATRIX_MIN_COLUMNS) + 1)), "rows": rows}
