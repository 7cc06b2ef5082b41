"""Seed the database with the default subjects."""
from datetime import datetime

from practice_tracker.config import DEFAULT_SUBJECTS
from practice_tracker.db import get_connection


def is_seeded(db_path: str) -> bool:
    """Check whether any subject exists yet."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM subjects").fetchone()[0]
    conn.close()
    return count > 0


def seed_subjects(db_path: str, names=DEFAULT_SUBJECTS) -> int:
    """Insert the default subjects into an empty store. Returns how many were added."""
    if is_seeded(db_path):
        return 0
    conn = get_connection(db_path)
    now = datetime.now().isoformat()
    added = 0
    for sort_order, name in enumerate(names):
        cur = conn.execute(
            "INSERT OR IGNORE INTO subjects (name, sort_order, created_at) VALUES (?, ?, ?)",
            (name, sort_order, now),
        )
        added += cur.rowcount
    conn.commit()
    conn.close()
    return added


def seed_all(db_path: str) -> None:
    """Run all seeders. Safe to call on every start."""
    seed_subjects(db_path)
