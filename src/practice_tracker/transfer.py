"""Bulk transfer document: export the whole store and overwrite it on import.

The document is a plain dict (JSON-compatible) with one array per entity:

    {"schemaVersion": 2, "exportedAt": "...",
     "subjects": [...], "series": [...], "problems": [...], "attempts": [...]}

Reading and writing it to a file is the caller's business.
"""
import logging
import sqlite3
from datetime import datetime

from practice_tracker.config import LEGACY_SUBJECT_ID, LEGACY_SUBJECT_NAME, SCHEMA_VERSION
from practice_tracker.db import get_connection, transaction
from practice_tracker.errors import DuplicateKey, ValidationError
from practice_tracker.models import Result, as_date, check_attempt_no, check_minutes, check_score
from practice_tracker.ordering import check_problem_key

logger = logging.getLogger(__name__)

TABLES = ("attempts", "problems", "series", "subjects")


def export_document(db_path: str) -> dict:
    conn = get_connection(db_path)
    subjects = conn.execute("SELECT * FROM subjects ORDER BY id").fetchall()
    series = conn.execute("SELECT * FROM series ORDER BY id").fetchall()
    problems = conn.execute("SELECT * FROM problems ORDER BY id").fetchall()
    attempts = conn.execute("SELECT * FROM attempts ORDER BY id").fetchall()
    conn.close()
    return {
        "schemaVersion": SCHEMA_VERSION,
        "exportedAt": datetime.now().isoformat(),
        "subjects": [
            {"id": r["id"], "name": r["name"], "sortOrder": r["sort_order"], "createdAt": r["created_at"]}
            for r in subjects
        ],
        "series": [
            {"id": r["id"], "subjectId": r["subject_id"], "name": r["name"],
             "sortOrder": r["sort_order"], "createdAt": r["created_at"]}
            for r in series
        ],
        "problems": [
            {"id": r["id"], "seriesId": r["series_id"], "kind": r["kind"],
             "number": r["number"], "createdAt": r["created_at"]}
            for r in problems
        ],
        "attempts": [
            {"id": r["id"], "problemId": r["problem_id"], "attemptNo": r["attempt_no"],
             "doneDate": r["done_date"], "minutes": r["minutes"], "score": r["score"],
             "result": r["result"], "createdAt": r["created_at"]}
            for r in attempts
        ],
    }


def _field(record: dict, key: str, collection: str):
    try:
        return record[key]
    except (KeyError, TypeError):
        raise ValidationError(f"{collection} record is missing '{key}'") from None


def _sort_order(record: dict, collection: str) -> int:
    value = record.get("sortOrder")
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{collection} sortOrder must be an integer, got {value!r}")
    return value


def _subject_rows(data: dict) -> list[tuple]:
    if not data.get("subjects"):
        # Documents from before subjects existed get a single shared subject.
        return [(LEGACY_SUBJECT_ID, LEGACY_SUBJECT_NAME, 0, datetime.now().isoformat())]
    return [
        (_field(s, "id", "subjects"), _field(s, "name", "subjects"),
         _sort_order(s, "subjects"), s.get("createdAt"))
        for s in data["subjects"]
    ]


def _series_rows(data: dict) -> list[tuple]:
    rows = []
    for s in data["series"]:
        subject_id = s.get("subjectId")
        rows.append((
            _field(s, "id", "series"),
            LEGACY_SUBJECT_ID if subject_id is None else subject_id,
            _field(s, "name", "series"),
            _sort_order(s, "series"),
            s.get("createdAt"),
        ))
    return rows


def _problem_rows(data: dict) -> list[tuple]:
    rows = []
    for p in data["problems"]:
        kind = _field(p, "kind", "problems")
        number = check_problem_key(kind, p.get("number"))
        rows.append((_field(p, "id", "problems"), _field(p, "seriesId", "problems"),
                     kind, number, p.get("createdAt")))
    return rows


def _attempt_rows(data: dict) -> list[tuple]:
    rows = []
    for a in data["attempts"]:
        attempt_no = check_attempt_no(_field(a, "attemptNo", "attempts"))
        # Older documents carry the ○/△/× mark under "att".
        result = Result.parse(a.get("result", a.get("att")))
        rows.append((
            _field(a, "id", "attempts"),
            _field(a, "problemId", "attempts"),
            attempt_no,
            as_date(_field(a, "doneDate", "attempts")).isoformat(),
            check_minutes(a.get("minutes")),
            check_score(a.get("score")),
            result.value,
            a.get("createdAt"),
        ))
    return rows


def import_document(db_path: str, data: dict) -> dict:
    """Replace the entire store with the document's contents.

    Everything is validated before the first write, and the wipe and reload
    happen in one transaction. Returns the number of rows loaded per collection.
    """
    if not isinstance(data, dict) or any(not isinstance(data.get(k), list) for k in ("series", "problems", "attempts")):
        raise ValidationError("Document must contain series, problems and attempts arrays")
    subjects = _subject_rows(data)
    series = _series_rows(data)
    problems = _problem_rows(data)
    attempts = _attempt_rows(data)

    with transaction(db_path) as conn:
        for table in TABLES:
            conn.execute(f"DELETE FROM {table}")
        try:
            conn.executemany(
                "INSERT INTO subjects (id, name, sort_order, created_at) VALUES (?, ?, ?, ?)", subjects
            )
            conn.executemany(
                "INSERT INTO series (id, subject_id, name, sort_order, created_at) VALUES (?, ?, ?, ?, ?)",
                series,
            )
            conn.executemany(
                "INSERT INTO problems (id, series_id, kind, number, created_at) VALUES (?, ?, ?, ?, ?)",
                problems,
            )
            conn.executemany(
                """INSERT INTO attempts
                (id, problem_id, attempt_no, done_date, minutes, score, result, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                attempts,
            )
        except sqlite3.IntegrityError as exc:
            logger.warning("Import rejected: %s", exc)
            if "FOREIGN KEY" in str(exc):
                raise ValidationError("Document references a record that does not exist") from exc
            raise DuplicateKey(f"Document violates a unique constraint: {exc}") from exc
    counts = {
        "subjects": len(subjects), "series": len(series),
        "problems": len(problems), "attempts": len(attempts),
    }
    logger.info("Imported %s", counts)
    return counts


def wipe_store(db_path: str) -> None:
    """Delete every series, problem and attempt. Subjects are kept."""
    with transaction(db_path) as conn:
        for table in TABLES[:-1]:
            conn.execute(f"DELETE FROM {table}")
    logger.info("Wiped store")
