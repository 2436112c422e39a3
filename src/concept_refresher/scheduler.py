"""Spaced repetition urgency scoring."""
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from concept_refresher.catalog import Question
from concept_refresher.models import QuestionHistory

DAY_MS = 24 * 60 * 60 * 1000

NEW_QUESTION_URGENCY = 10.0
CORRECT_INTERVALS = (3, 7, 14, 30, 90)
INCORRECT_INTERVALS = (1, 1, 3, 7, 14)


def review_interval(history: QuestionHistory) -> int:
    """Days to wait after the last attempt before the question is due again.

    The table follows the outcome of the last attempt and is indexed by the
    repetition level, capped at the last entry.
    """
    intervals = CORRECT_INTERVALS if history.last_correct else INCORRECT_INTERVALS
    level = min(max(history.repetition_level, 0), len(intervals) - 1)
    return intervals[level]


def review_urgency(history: Optional[QuestionHistory], now_ms: int) -> float:
    """How overdue a question is for review; higher is more urgent, never negative."""
    if history is None or history.attempts == 0:
        return NEW_QUESTION_URGENCY
    days_since_attempt = (now_ms - history.last_attempt) / DAY_MS
    return max(0.0, days_since_attempt - review_interval(history))


def order_by_urgency(
    questions: Sequence[Question],
    histories: dict[str, QuestionHistory],
    now_ms: int,
) -> list[Question]:
    # sorted() is stable, so equal urgencies keep their incoming order
    return sorted(
        questions,
        key=lambda q: review_urgency(histories.get(q.id), now_ms),
        reverse=True,
    )


def next_review_date(history: QuestionHistory) -> date:
    last = datetime.fromtimestamp(history.last_attempt / 1000).date()
    return last + timedelta(days=review_interval(history))


def count_due(histories: dict[str, QuestionHistory], today: date) -> int:
    return sum(1 for h in histories.values() if h.attempts and next_review_date(h) <= today)
