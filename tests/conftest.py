import pytest

from practice_tracker.db import init_db
from practice_tracker.store import add_series, add_subject


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    return db_path


@pytest.fixture
def db(tmp_db):
    """An initialized, empty database."""
    init_db(tmp_db)
    return tmp_db


@pytest.fixture
def series_id(db):
    """Subject "S" with a single series "1-1"; returns the series id."""
    subject = add_subject(db, "S")
    return add_series(db, subject.id, "1-1").id
