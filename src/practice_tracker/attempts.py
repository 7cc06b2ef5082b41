"""Attempt lifecycle: record, edit, delete and renumber a problem's attempts.

Attempt numbers and dates are unique per problem. Inserts and edits check
both before writing; the unique indexes on the attempts table enforce them
again at write time, so DuplicateKey can surface from either place.
"""
import logging
import sqlite3
from datetime import datetime
from typing import Optional

from practice_tracker.db import get_connection, transaction
from practice_tracker.errors import DuplicateKey, NotFound, ValidationError
from practice_tracker.models import (
    Attempt, Result, as_date, check_attempt_no, check_minutes, check_score,
)
from practice_tracker.ordering import attempt_sort_key, renumber_sort_key
from practice_tracker.store import get_or_create_problem

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ("attempt_no", "done_date", "minutes", "score", "result")


def _attempts(conn: sqlite3.Connection, problem_id: int) -> list[Attempt]:
    rows = conn.execute("SELECT * FROM attempts WHERE problem_id = ?", (problem_id,)).fetchall()
    return sorted((Attempt.from_row(r) for r in rows), key=attempt_sort_key)


def _check_free(others: list[Attempt], attempt_no: int, done_date) -> None:
    if any(a.attempt_no == attempt_no for a in others):
        raise DuplicateKey(f"Attempt {attempt_no} already exists for this problem")
    if any(a.done_date == done_date for a in others):
        raise DuplicateKey(f"An attempt on {done_date.isoformat()} already exists for this problem")


def list_attempts(db_path: str, problem_id: int) -> list[Attempt]:
    """All attempts of a problem in history order."""
    conn = get_connection(db_path)
    attempts = _attempts(conn, problem_id)
    conn.close()
    return attempts


def get_attempt(db_path: str, attempt_id: int) -> Optional[Attempt]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM attempts WHERE id = ?", (attempt_id,)).fetchone()
    conn.close()
    return Attempt.from_row(row) if row else None


def next_attempt_no(db_path: str, problem_id: int) -> int:
    conn = get_connection(db_path)
    value = conn.execute(
        "SELECT COALESCE(MAX(attempt_no), 0) + 1 FROM attempts WHERE problem_id = ?",
        (problem_id,),
    ).fetchone()[0]
    conn.close()
    return value


def insert_attempt(
    db_path: str,
    problem_id: int,
    attempt_no: int,
    done_date,
    result,
    minutes: Optional[float] = None,
    score: Optional[float] = None,
) -> Attempt:
    attempt_no = check_attempt_no(attempt_no)
    done_date = as_date(done_date)
    result = Result.parse(result)
    minutes = check_minutes(minutes)
    score = check_score(score)
    with transaction(db_path) as conn:
        if not conn.execute("SELECT 1 FROM problems WHERE id = ?", (problem_id,)).fetchone():
            raise NotFound(f"Problem {problem_id} not found")
        try:
            _check_free(_attempts(conn, problem_id), attempt_no, done_date)
            cur = conn.execute(
                """INSERT INTO attempts
                (problem_id, attempt_no, done_date, minutes, score, result, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (problem_id, attempt_no, done_date.isoformat(), minutes, score,
                 result.value, datetime.now().isoformat()),
            )
        except sqlite3.IntegrityError as exc:
            logger.warning("Attempt insert for problem %d hit a unique index: %s", problem_id, exc)
            raise DuplicateKey("Attempt number or date already taken for this problem") from exc
        except DuplicateKey as exc:
            logger.warning("Rejected attempt for problem %d: %s", problem_id, exc)
            raise
        row = conn.execute("SELECT * FROM attempts WHERE id = ?", (cur.lastrowid,)).fetchone()
    logger.info("Recorded attempt %d for problem %d on %s", attempt_no, problem_id, done_date)
    return Attempt.from_row(row)


def record_attempt(
    db_path: str,
    series_id: int,
    kind: str,
    number: Optional[int],
    done_date,
    result,
    minutes: Optional[float] = None,
    score: Optional[float] = None,
) -> Attempt:
    """Get or create the problem and append the next attempt to it.

    Every field is checked before the problem is created, so a rejected
    attempt never leaves an empty problem behind.
    """
    done_date = as_date(done_date)
    result = Result.parse(result)
    minutes = check_minutes(minutes)
    score = check_score(score)
    problem_id = get_or_create_problem(db_path, series_id, kind, number)
    return insert_attempt(
        db_path, problem_id, next_attempt_no(db_path, problem_id), done_date, result,
        minutes=minutes, score=score,
    )


def update_attempt(db_path: str, attempt_id: int, **patch) -> Attempt:
    """Apply a partial update; attempt_no and done_date stay unique per problem."""
    unknown = set(patch) - set(PATCHABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if "attempt_no" in patch:
        patch["attempt_no"] = check_attempt_no(patch["attempt_no"])
    if "done_date" in patch:
        patch["done_date"] = as_date(patch["done_date"])
    if "result" in patch:
        patch["result"] = Result.parse(patch["result"])
    if "minutes" in patch:
        patch["minutes"] = check_minutes(patch["minutes"])
    if "score" in patch:
        patch["score"] = check_score(patch["score"])

    with transaction(db_path) as conn:
        row = conn.execute("SELECT * FROM attempts WHERE id = ?", (attempt_id,)).fetchone()
        if not row:
            raise NotFound(f"Attempt {attempt_id} not found")
        current = Attempt.from_row(row)
        attempt_no = patch.get("attempt_no", current.attempt_no)
        done_date = patch.get("done_date", current.done_date)
        result = patch.get("result", current.result)
        minutes = patch.get("minutes", current.minutes)
        score = patch.get("score", current.score)
        others = [a for a in _attempts(conn, current.problem_id) if a.id != attempt_id]
        try:
            _check_free(others, attempt_no, done_date)
            conn.execute(
                """UPDATE attempts SET attempt_no = ?, done_date = ?, minutes = ?, score = ?,
                result = ?, created_at = ? WHERE id = ?""",
                (attempt_no, done_date.isoformat(), minutes, score, result.value,
                 datetime.now().isoformat(), attempt_id),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateKey("Attempt number or date already taken for this problem") from exc
        except DuplicateKey as exc:
            logger.warning("Rejected edit of attempt %d: %s", attempt_id, exc)
            raise
        row = conn.execute("SELECT * FROM attempts WHERE id = ?", (attempt_id,)).fetchone()
    logger.info("Updated attempt %d", attempt_id)
    return Attempt.from_row(row)


def delete_attempt(db_path: str, attempt_id: int) -> None:
    """Remove one attempt. Remaining attempts keep their numbers."""
    with transaction(db_path) as conn:
        cur = conn.execute("DELETE FROM attempts WHERE id = ?", (attempt_id,))
    if cur.rowcount:
        logger.info("Deleted attempt %d", attempt_id)


def renumber_attempts(db_path: str, problem_id: int) -> list[Attempt]:
    """Reassign attempt numbers 1..n in date order and return the new history."""
    with transaction(db_path) as conn:
        ordered = sorted(_attempts(conn, problem_id), key=renumber_sort_key)
        # Park every row on a negative number first so no step collides on the unique index.
        conn.execute(
            "UPDATE attempts SET attempt_no = -attempt_no WHERE problem_id = ?", (problem_id,)
        )
        for attempt_no, attempt in enumerate(ordered, 1):
            conn.execute(
                "UPDATE attempts SET attempt_no = ? WHERE id = ?", (attempt_no, attempt.id)
            )
        attempts = _attempts(conn, problem_id)
    logger.info("Renumbered %d attempts of problem %d", len(attempts), problem_id)
    return attempts
