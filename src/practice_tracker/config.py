"""Static configuration: storage location, problem kinds and review policy."""
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DB_PATH = str(Path.home() / ".practice_tracker" / "tracker.db")


@dataclass(frozen=True)
class KindSpec:
    name: str
    numbered: bool


# Order here is the display rank of each kind within a series.
PROBLEM_KINDS = (
    KindSpec("Problem", numbered=True),
    KindSpec("Comprehensive", numbered=True),
    KindSpec("ConfirmationTest", numbered=True),
    KindSpec("Drill", numbered=False),
)

# Days until the next review, keyed by Result value. 0 means no review needed.
REVIEW_INTERVALS = {
    "good": 0,
    "fair": 14,
    "poor": 7,
}

UPCOMING_HORIZON_DAYS = 7
MATRIX_MIN_COLUMNS = 5

DEFAULT_SUBJECTS = (
    "Consumption Tax",
    "Income Tax",
    "Corporate Tax",
    "Resident Tax",
    "National Tax Collection",
)

# Subject that older, subject-less exports are attached to on import.
LEGACY_SUBJECT_ID = 1
LEGACY_SUBJECT_NAME = "Common"

SCHEMA_VERSION = 2
