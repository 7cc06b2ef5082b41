# tests/test_seed.py
from practice_tracker.config import DEFAULT_SUBJECTS
from practice_tracker.db import init_db
from practice_tracker.seed import is_seeded, seed_all, seed_subjects
from practice_tracker.store import add_subject, list_subjects


def test_seed_subjects_in_configured_order(tmp_db):
    init_db(tmp_db)
    assert not is_seeded(tmp_db)
    seed_all(tmp_db)
    assert is_seeded(tmp_db)
    subjects = list_subjects(tmp_db)
    assert [s.name for s in subjects] == list(DEFAULT_SUBJECTS)
    assert [s.sort_order for s in subjects] == list(range(len(DEFAULT_SUBJECTS)))


def test_seed_is_idempotent(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    seed_all(tmp_db)
    assert len(list_subjects(tmp_db)) == len(DEFAULT_SUBJECTS)


def test_seed_skips_non_empty_store(tmp_db):
    init_db(tmp_db)
    add_subject(tmp_db, "Mine")
    assert seed_subjects(tmp_db) == 0
    assert [s.name for s in list_subjects(tmp_db)] == ["Mine"]


def test_seed_counts_only_inserted_subjects(tmp_db):
    init_db(tmp_db)
    assert seed_subjects(tmp_db, ["Income Tax", "Income Tax", "Consumption Tax"]) == 2
    assert [s.name for s in list_subjects(tmp_db)] == ["Income Tax", "Consumption Tax"]
