"""Data classes for the practice tracker domain model."""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from practice_tracker.errors import ValidationError


class Result(str, Enum):
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @property
    def symbol(self) -> str:
        return _RESULT_SYMBOLS[self]

    @classmethod
    def parse(cls, value) -> "Result":
        """Accept a Result, its value, its name or its ○/△/× symbol."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        for result in cls:
            if text in (result.value, result.name, result.symbol):
                return result
        raise ValidationError(f"Unknown result: {value!r}")


_RESULT_SYMBOLS = {Result.GOOD: "○", Result.FAIR: "△", Result.POOR: "×"}


class State(str, Enum):
    UNSEEN = "unseen"
    MASTERED = "mastered"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"
    SCHEDULED = "scheduled"


def as_date(value) -> date:
    """Coerce a date, datetime or ISO string into a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError("A date is required")
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Malformed date: {value!r}") from None


def check_attempt_no(attempt_no) -> int:
    if isinstance(attempt_no, bool) or not isinstance(attempt_no, int) or attempt_no <= 0:
        raise ValidationError(f"Attempt number must be a positive integer, got {attempt_no!r}")
    return attempt_no


def check_minutes(minutes) -> Optional[float]:
    """Minutes are optional, but when given they must be a positive number."""
    if minutes is None:
        return None
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or minutes <= 0:
        raise ValidationError(f"Minutes must be a positive number, got {minutes!r}")
    return minutes


def check_score(score) -> Optional[float]:
    if score is None:
        return None
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError(f"Score must be a number, got {score!r}")
    return score


@dataclass
class Subject:
    id: int
    name: str
    sort_order: int = 0
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Subject":
        return cls(row["id"], row["name"], row["sort_order"], row["created_at"])


@dataclass
class Series:
    id: int
    subject_id: int
    name: str
    sort_order: int = 0
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Series":
        return cls(row["id"], row["subject_id"], row["name"], row["sort_order"], row["created_at"])


@dataclass
class Problem:
    id: int
    series_id: int
    kind: str
    number: Optional[int] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Problem":
        return cls(row["id"], row["series_id"], row["kind"], row["number"], row["created_at"])


@dataclass
class Attempt:
    id: int
    problem_id: int
    attempt_no: int
    done_date: date
    result: Result
    minutes: Optional[float] = None
    score: Optional[float] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Attempt":
        return cls(
            id=row["id"],
            problem_id=row["problem_id"],
            attempt_no=row["attempt_no"],
            done_date=date.fromisoformat(row["done_date"]),
            result=Result(row["result"]),
            minutes=row["minutes"],
            score=row["score"],
            created_at=row["created_at"],
        )


@dataclass
class ProblemStatus:
    problem_id: int
    state: State
    last_no: int = 0
    last_date: Optional[date] = None
    next_due: Optional[date] = None
    overdue_days: int = 0
    last_result: Optional[Result] = None

    @property
    def excluded(self) -> bool:
        """True when the problem never shows up in the due or upcoming views."""
        return self.state in (State.UNSEEN, State.MASTERED)
