# tests/test_transfer.py
import json

import pytest

from practice_tracker.attempts import list_attempts, record_attempt
from practice_tracker.db import init_db
from practice_tracker.errors import DuplicateKey, ValidationError
from practice_tracker.models import Result
from practice_tracker.store import (
    add_series, add_subject, list_all_problems, list_series, list_subjects,
)
from practice_tracker.transfer import export_document, import_document, wipe_store


def _populate(db):
    s = add_subject(db, "Income Tax")
    add_subject(db, "Corporate Tax")
    series = add_series(db, s.id, "1-1")
    record_attempt(db, series.id, "Problem", 3, "2024-06-01", "poor", minutes=30, score=55.5)
    record_attempt(db, series.id, "Problem", 3, "2024-06-08", "fair")
    record_attempt(db, series.id, "Drill", None, "2024-06-02", "good")


def _without_timestamp(doc):
    doc = dict(doc)
    doc.pop("exportedAt")
    return doc


def test_export_document_shape(db):
    _populate(db)
    doc = export_document(db)
    assert doc["schemaVersion"] == 2
    assert [s["name"] for s in doc["subjects"]] == ["Income Tax", "Corporate Tax"]
    assert set(doc["attempts"][0]) == {
        "id", "problemId", "attemptNo", "doneDate", "minutes", "score", "result", "createdAt",
    }
    assert doc["attempts"][0]["doneDate"] == "2024-06-01"
    assert doc["problems"][1]["number"] is None
    json.dumps(doc)  # must be JSON-serializable


def test_round_trip_into_fresh_store(db, tmp_path):
    _populate(db)
    doc = export_document(db)
    other = str(tmp_path / "other.db")
    init_db(other)
    import_document(other, json.loads(json.dumps(doc)))
    assert _without_timestamp(export_document(other)) == _without_timestamp(doc)


def test_import_overwrites_existing_data(db):
    _populate(db)
    doc = export_document(db)
    add_subject(db, "Extra")
    wipe_store(db)
    counts = import_document(db, doc)
    assert counts == {"subjects": 2, "series": 1, "problems": 2, "attempts": 3}
    assert [s.name for s in list_subjects(db)] == ["Income Tax", "Corporate Tax"]


def test_import_requires_core_arrays(db):
    with pytest.raises(ValidationError):
        import_document(db, {"subjects": []})
    with pytest.raises(ValidationError):
        import_document(db, None)


def test_import_is_atomic_on_duplicate(db):
    _populate(db)
    before = export_document(db)
    doc = export_document(db)
    doc["attempts"][1]["attemptNo"] = doc["attempts"][0]["attemptNo"]
    with pytest.raises(DuplicateKey):
        import_document(db, doc)
    assert _without_timestamp(export_document(db)) == _without_timestamp(before)


def test_import_rejects_dangling_reference(db):
    doc = {
        "subjects": [{"id": 1, "name": "S"}],
        "series": [{"id": 1, "subjectId": 1, "name": "1-1"}],
        "problems": [{"id": 1, "seriesId": 99, "kind": "Problem", "number": 1}],
        "attempts": [],
    }
    with pytest.raises(ValidationError):
        import_document(db, doc)


def test_import_rejects_invalid_problem_key(db):
    doc = {
        "series": [{"id": 1, "name": "1-1"}],
        "problems": [{"id": 1, "seriesId": 1, "kind": "Problem", "number": None}],
        "attempts": [],
    }
    with pytest.raises(ValidationError):
        import_document(db, doc)


@pytest.mark.parametrize("field, value", [
    ("minutes", -3), ("minutes", "abc"), ("score", "abc"), ("attemptNo", 0),
])
def test_import_rejects_invalid_attempt_fields(db, field, value):
    _populate(db)
    before = export_document(db)
    doc = export_document(db)
    doc["attempts"][0][field] = value
    with pytest.raises(ValidationError):
        import_document(db, doc)
    assert _without_timestamp(export_document(db)) == _without_timestamp(before)


@pytest.mark.parametrize("collection", ["subjects", "series"])
def test_import_rejects_non_integer_sort_order(db, collection):
    _populate(db)
    before = export_document(db)
    doc = export_document(db)
    doc[collection][0]["sortOrder"] = "first"
    with pytest.raises(ValidationError):
        import_document(db, doc)
    assert _without_timestamp(export_document(db)) == _without_timestamp(before)


def test_import_legacy_document_without_subjects(db):
    doc = {
        "series": [{"id": 4, "name": "1-1", "sortOrder": 0}],
        "problems": [{"id": 7, "seriesId": 4, "kind": "Problem", "number": 2}],
        "attempts": [{"id": 1, "problemId": 7, "attemptNo": 1, "doneDate": "2024-06-01", "att": "×"}],
    }
    import_document(db, doc)
    subjects = list_subjects(db)
    assert [(s.id, s.name) for s in subjects] == [(1, "Common")]
    assert [s.id for s in list_series(db, 1)] == [4]
    attempts = list_attempts(db, 7)
    assert attempts[0].result is Result.POOR


def test_wipe_store_keeps_subjects(db):
    _populate(db)
    wipe_store(db)
    assert len(list_subjects(db)) == 2
    assert list_all_problems(db) == []
