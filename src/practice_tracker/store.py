"""Entity store: subjects, series and problems.

Every mutating function runs in a single transaction; a unique constraint
violation raises DuplicateKey and leaves the store untouched.
"""
import logging
import sqlite3
from datetime import datetime
from typing import Optional

from practice_tracker.db import get_connection, transaction
from practice_tracker.errors import DuplicateKey, NotFound, ValidationError
from practice_tracker.models import Problem, Series, Subject
from practice_tracker.ordering import (
    check_problem_key, problem_label, problem_sort_key, series_sort_key, subject_sort_key,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now().isoformat()


def _clean_name(name: str, what: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError(f"{what} name is empty")
    return name


def _check_direction(direction: int) -> None:
    if direction not in (-1, 1):
        raise ValidationError(f"Direction must be -1 or +1, got {direction!r}")


def _reorder(conn: sqlite3.Connection, table: str, siblings: list, item_id: int, direction: int) -> bool:
    """Swap item_id with its neighbour and rewrite sort_order as list position."""
    ids = [s.id for s in siblings]
    if item_id not in ids:
        return False
    i = ids.index(item_id)
    j = i + direction
    if j < 0 or j >= len(ids):
        return False
    ids[i], ids[j] = ids[j], ids[i]
    for position, sibling_id in enumerate(ids):
        conn.execute(f"UPDATE {table} SET sort_order = ? WHERE id = ?", (position, sibling_id))
    return True


# --- Subjects ---


def _subjects(conn: sqlite3.Connection) -> list[Subject]:
    rows = conn.execute("SELECT * FROM subjects").fetchall()
    return sorted((Subject.from_row(r) for r in rows), key=subject_sort_key)


def list_subjects(db_path: str) -> list[Subject]:
    conn = get_connection(db_path)
    subjects = _subjects(conn)
    conn.close()
    return subjects


def get_subject(db_path: str, subject_id: int) -> Optional[Subject]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM subjects WHERE id = ?", (subject_id,)).fetchone()
    conn.close()
    return Subject.from_row(row) if row else None


def add_subject(db_path: str, name: str) -> Subject:
    """Append a subject after the existing ones."""
    name = _clean_name(name, "Subject")
    with transaction(db_path) as conn:
        sort_order = conn.execute(
            "SELECT COALESCE(MAX(sort_order) + 1, 0) FROM subjects"
        ).fetchone()[0]
        try:
            cur = conn.execute(
                "INSERT INTO subjects (name, sort_order, created_at) VALUES (?, ?, ?)",
                (name, sort_order, _now()),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateKey(f"Subject '{name}' already exists") from exc
        row = conn.execute("SELECT * FROM subjects WHERE id = ?", (cur.lastrowid,)).fetchone()
    logger.info("Added subject %r", name)
    return Subject.from_row(row)


def rename_subject(db_path: str, subject_id: int, name: str) -> None:
    name = _clean_name(name, "Subject")
    with transaction(db_path) as conn:
        try:
            cur = conn.execute("UPDATE subjects SET name = ? WHERE id = ?", (name, subject_id))
        except sqlite3.IntegrityError as exc:
            raise DuplicateKey(f"Subject '{name}' already exists") from exc
        if cur.rowcount == 0:
            raise NotFound(f"Subject {subject_id} not found")


def move_subject(db_path: str, subject_id: int, direction: int) -> bool:
    """Move a subject one place up (-1) or down (+1). Returns False on a no-op."""
    _check_direction(direction)
    with transaction(db_path) as conn:
        return _reorder(conn, "subjects", _subjects(conn), subject_id, direction)


# --- Series ---


def _series(conn: sqlite3.Connection, subject_id: int) -> list[Series]:
    rows = conn.execute("SELECT * FROM series WHERE subject_id = ?", (subject_id,)).fetchall()
    return sorted((Series.from_row(r) for r in rows), key=series_sort_key)


def list_series(db_path: str, subject_id: int) -> list[Series]:
    conn = get_connection(db_path)
    series = _series(conn, subject_id)
    conn.close()
    return series


def get_series(db_path: str, series_id: int) -> Optional[Series]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM series WHERE id = ?", (series_id,)).fetchone()
    conn.close()
    return Series.from_row(row) if row else None


def _insert_series(conn: sqlite3.Connection, subject_id: int, name: str) -> int:
    if not conn.execute("SELECT 1 FROM subjects WHERE id = ?", (subject_id,)).fetchone():
        raise NotFound(f"Subject {subject_id} not found")
    sort_order = conn.execute(
        "SELECT COALESCE(MAX(sort_order) + 1, 0) FROM series WHERE subject_id = ?",
        (subject_id,),
    ).fetchone()[0]
    cur = conn.execute(
        "INSERT INTO series (subject_id, name, sort_order, created_at) VALUES (?, ?, ?, ?)",
        (subject_id, name, sort_order, _now()),
    )
    return cur.lastrowid


def add_series(db_path: str, subject_id: int, name: str) -> Series:
    name = _clean_name(name, "Series")
    with transaction(db_path) as conn:
        try:
            series_id = _insert_series(conn, subject_id, name)
        except sqlite3.IntegrityError as exc:
            raise DuplicateKey(f"Series '{name}' already exists in this subject") from exc
        row = conn.execute("SELECT * FROM series WHERE id = ?", (series_id,)).fetchone()
    logger.info("Added series %r to subject %d", name, subject_id)
    return Series.from_row(row)


def get_or_create_series(db_path: str, subject_id: int, name: str) -> int:
    """Return the id of the named series, appending it to the subject if missing."""
    name = _clean_name(name, "Series")
    with transaction(db_path) as conn:
        row = conn.execute(
            "SELECT id FROM series WHERE subject_id = ? AND name = ?", (subject_id, name)
        ).fetchone()
        if row:
            return row["id"]
        series_id = _insert_series(conn, subject_id, name)
    logger.info("Created series %r in subject %d", name, subject_id)
    return series_id


def rename_series(db_path: str, series_id: int, name: str) -> None:
    name = _clean_name(name, "Series")
    with transaction(db_path) as conn:
        try:
            cur = conn.execute("UPDATE series SET name = ? WHERE id = ?", (name, series_id))
        except sqlite3.IntegrityError as exc:
            raise DuplicateKey(f"Series '{name}' already exists in this subject") from exc
        if cur.rowcount == 0:
            raise NotFound(f"Series {series_id} not found")


def delete_series(db_path: str, series_id: int) -> None:
    """Delete a series with all of its problems and attempts."""
    with transaction(db_path) as conn:
        cur = conn.execute("DELETE FROM series WHERE id = ?", (series_id,))
    if cur.rowcount:
        logger.info("Deleted series %d", series_id)


def move_series(db_path: str, series_id: int, direction: int) -> bool:
    """Move a series one place up (-1) or down (+1) within its subject."""
    _check_direction(direction)
    with transaction(db_path) as conn:
        row = conn.execute("SELECT subject_id FROM series WHERE id = ?", (series_id,)).fetchone()
        if not row:
            return False
        return _reorder(conn, "series", _series(conn, row["subject_id"]), series_id, direction)


# --- Problems ---


def _problems(rows) -> list[Problem]:
    return sorted((Problem.from_row(r) for r in rows), key=problem_sort_key)


def list_problems(db_path: str, series_id: int) -> list[Problem]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM problems WHERE series_id = ?", (series_id,)).fetchall()
    conn.close()
    return _problems(rows)


def list_subject_problems(db_path: str, subject_id: int) -> list[Problem]:
    """Problems of every series in a subject, in problem order (not series order)."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT p.* FROM problems p
        JOIN series s ON p.series_id = s.id
        WHERE s.subject_id = ?""",
        (subject_id,),
    ).fetchall()
    conn.close()
    return _problems(rows)


def list_all_problems(db_path: str) -> list[Problem]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM problems").fetchall()
    conn.close()
    return _problems(rows)


def get_problem(db_path: str, problem_id: int) -> Optional[Problem]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM problems WHERE id = ?", (problem_id,)).fetchone()
    conn.close()
    return Problem.from_row(row) if row else None


def get_or_create_problem(db_path: str, series_id: int, kind: str, number: Optional[int] = None) -> int:
    """Return the id of the (series, kind, number) problem, creating it on first use."""
    number = check_problem_key(kind, number)
    with transaction(db_path) as conn:
        if not conn.execute("SELECT 1 FROM series WHERE id = ?", (series_id,)).fetchone():
            raise NotFound(f"Series {series_id} not found")
        # The unique index makes a concurrent insert of the same key a no-op.
        cur = conn.execute(
            "INSERT OR IGNORE INTO problems (series_id, kind, number, created_at) VALUES (?, ?, ?, ?)",
            (series_id, kind, number, _now()),
        )
        row = conn.execute(
            "SELECT id FROM problems WHERE series_id = ? AND kind = ? AND IFNULL(number, 0) = ?",
            (series_id, kind, number or 0),
        ).fetchone()
    if cur.rowcount:
        logger.info("Created problem %s in series %d", problem_label(kind, number), series_id)
    return row["id"]


def update_problem(db_path: str, problem_id: int, kind: str, number: Optional[int] = None) -> None:
    """Change the kind/number of a problem, keeping its attempt history."""
    number = check_problem_key(kind, number)
    with transaction(db_path) as conn:
        try:
            cur = conn.execute(
                "UPDATE problems SET kind = ?, number = ? WHERE id = ?", (kind, number, problem_id)
            )
        except sqlite3.IntegrityError as exc:
            logger.warning("Rejected problem update %d: %s", problem_id, exc)
            raise DuplicateKey(f"{problem_label(kind, number)} already exists in this series") from exc
        if cur.rowcount == 0:
            raise NotFound(f"Problem {problem_id} not found")


def delete_problem(db_path: str, problem_id: int) -> None:
    """Delete a problem and its attempts together."""
    with transaction(db_path) as conn:
        removed = conn.execute(
            "SELECT COUNT(*) FROM attempts WHERE problem_id = ?", (problem_id,)
        ).fetchone()[0]
        conn.execute("DELETE FROM attempts WHERE problem_id = ?", (problem_id,))
        cur = conn.execute("DELETE FROM problems WHERE id = ?", (problem_id,))
    if cur.rowcount:
        logger.info("Deleted problem %d with %d attempts", problem_id, removed)
