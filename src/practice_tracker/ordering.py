"""Canonical sort orders and problem identity rules."""
import locale
from typing import Optional

from practice_tracker.config import PROBLEM_KINDS, KindSpec
from practice_tracker.errors import ValidationError

_KINDS = {k.name: k for k in PROBLEM_KINDS}
_KIND_RANKS = {k.name: rank for rank, k in enumerate(PROBLEM_KINDS)}


def name_key(name: str) -> str:
    """Locale-aware collation key for display names."""
    return locale.strxfrm(name or "")


def kind_spec(kind: str) -> KindSpec:
    try:
        return _KINDS[kind]
    except KeyError:
        raise ValidationError(f"Unknown problem kind: {kind!r}") from None


def kind_rank(kind: str) -> int:
    # Unknown kinds sort after every configured one.
    return _KIND_RANKS.get(kind, len(PROBLEM_KINDS))


def check_problem_key(kind: str, number: Optional[int]) -> Optional[int]:
    """Validate a (kind, number) pair and return the normalized number."""
    definition = kind_spec(kind)
    if not definition.numbered:
        if number is not None:
            raise ValidationError(f"{kind} does not take a number")
        return None
    if number is None:
        raise ValidationError(f"{kind} requires a number")
    if isinstance(number, bool) or not isinstance(number, int) or number <= 0:
        raise ValidationError(f"Problem number must be a positive integer, got {number!r}")
    return number


def problem_label(kind: str, number: Optional[int]) -> str:
    return kind if number is None else f"{kind} {number}"


def subject_sort_key(subject) -> tuple:
    return (subject.sort_order or 0, name_key(subject.name))


def series_sort_key(series) -> tuple:
    return (series.sort_order or 0, name_key(series.name))


def problem_sort_key(problem) -> tuple:
    return (kind_rank(problem.kind), problem.number or 0, problem.id)


def attempt_sort_key(attempt) -> tuple:
    """History order: attempt number, then date, then id."""
    return (attempt.attempt_no, attempt.done_date, attempt.id)


def renumber_sort_key(attempt) -> tuple:
    return (attempt.done_date, attempt.id)
