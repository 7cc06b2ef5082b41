"""Review status derived from a problem's attempt history."""
from datetime import date, timedelta
from typing import Optional

from practice_tracker.attempts import list_attempts
from practice_tracker.config import REVIEW_INTERVALS, UPCOMING_HORIZON_DAYS
from practice_tracker.models import ProblemStatus, Result, State


def interval_days(result: Result) -> int:
    """Days until the next review; 0 means the problem needs no further review."""
    return REVIEW_INTERVALS[Result.parse(result).value]


def derive_status(
    problem_id: int,
    attempts: list,
    today: Optional[date] = None,
    horizon_days: int = UPCOMING_HORIZON_DAYS,
) -> ProblemStatus:
    """Compute the status of one problem from its attempts.

    The latest attempt is the one with the highest attempt number; if two rows
    share it, the most recently inserted (highest id) wins.
    """
    if not attempts:
        return ProblemStatus(problem_id, State.UNSEEN)
    today = today or date.today()
    last = max(attempts, key=lambda a: (a.attempt_no, a.id))
    status = ProblemStatus(
        problem_id,
        State.MASTERED,
        last_no=last.attempt_no,
        last_date=last.done_date,
        last_result=last.result,
    )
    days = interval_days(last.result)
    if days == 0:
        return status

    status.next_due = last.done_date + timedelta(days=days)
    if status.next_due <= today:
        status.state = State.OVERDUE
        status.overdue_days = (today - status.next_due).days
    elif status.next_due <= today + timedelta(days=horizon_days):
        status.state = State.UPCOMING
    else:
        status.state = State.SCHEDULED
    return status


def compute_status(db_path: str, problem, today: Optional[date] = None) -> ProblemStatus:
    """Load a problem's attempts and derive its status."""
    return derive_status(problem.id, list_attempts(db_path, problem.id), today)
