"""User settings persisted in the key/value settings table."""
from practice_tracker.db import get_connection


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, str(value), str(value)),
    )
    conn.commit()
    conn.close()


def get_int_setting(db_path: str, key: str, default: int | None = None) -> int | None:
    """Read an integer setting, falling back to default when unset or unparsable."""
    value = get_setting(db_path, key)
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default
