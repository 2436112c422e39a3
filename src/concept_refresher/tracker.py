"""Progress store: records answers and quiz completions, owns durable state."""
import json
import logging
import sqlite3
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from concept_refresher import analytics
from concept_refresher.catalog import Catalog
from concept_refresher.config import TrackerSettings
from concept_refresher.db import init_db, read_value, write_value
from concept_refresher.models import (
    SNAPSHOT_VERSION,
    AnswerRecord,
    Analytics,
    ProgressState,
    QuizCompletion,
    QuizResult,
    SessionRecord,
    SubjectPerformance,
)

logger = logging.getLogger(__name__)

MAX_REPETITION_LEVEL = 5


def to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def local_date(timestamp_ms: int) -> date:
    return datetime.fromtimestamp(timestamp_ms / 1000).date()


class ProgressStore:
    """Per-user performance records persisted as one JSON snapshot in SQLite.

    Every mutation saves the whole snapshot before returning. Storage errors
    are logged and never raised; the in-memory state stays authoritative.
    """

    def __init__(
        self,
        db_path: str,
        settings: Optional[TrackerSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db_path = db_path
        self.settings = settings or TrackerSettings()
        self.clock = clock or datetime.now
        self.state = self._load()

    def now_ms(self) -> int:
        return to_ms(self.clock())

    # -- persistence -------------------------------------------------------

    def _load(self) -> ProgressState:
        try:
            init_db(self.db_path)
            raw = read_value(self.db_path)
        except (sqlite3.Error, OSError):
            logger.exception("Could not read progress from %s", self.db_path)
            raw = None
        if raw:
            try:
                return ProgressState.from_dict(json.loads(raw))
            except (ValueError, KeyError, TypeError, AttributeError, OverflowError):
                logger.exception("Stored progress is unreadable, starting fresh")
        return ProgressState.fresh(self.now_ms())

    def save(self) -> bool:
        try:
            write_value(self.db_path, json.dumps(self.state.to_dict()))
        except (sqlite3.Error, OSError):
            logger.exception("Could not save progress to %s", self.db_path)
            return False
        return True

    # -- recording ---------------------------------------------------------

    def get_or_create_subject(self, subject_key: str) -> SubjectPerformance:
        return self.state.subjects.setdefault(subject_key, SubjectPerformance())

    def get_subject_performance(self, subject_key: str) -> Optional[SubjectPerformance]:
        return self.state.subjects.get(subject_key)

    def record_answer(self, subject_key: str, answer: AnswerRecord) -> None:
        subject = self.get_or_create_subject(subject_key)
        subject.total_questions += 1
        if answer.is_correct:
            subject.correct_answers += 1
        subject.total_time += answer.time_spent
        subject.last_attempt = answer.timestamp

        subject.topic(answer.topic).record(answer.is_correct, answer.time_spent, answer.timestamp)
        subject.difficulty(answer.difficulty).record(answer.is_correct, answer.time_spent)
        subject.history(answer.question_id).record(
            answer.is_correct, answer.time_spent, answer.timestamp, MAX_REPETITION_LEVEL,
        )

        user = self.state.user
        user.total_questions += 1
        if answer.is_correct:
            user.correct_answers += 1
        user.total_time += answer.time_spent
        self.save()

    def record_quiz_completion(self, subject_key: str, result: QuizResult) -> None:
        subject = self.get_or_create_subject(subject_key)
        subject.quiz_history.append(QuizCompletion.from_result(result))
        del subject.quiz_history[:-self.settings.quiz_history_cap]

        self.state.sessions.append(SessionRecord(
            timestamp=result.timestamp,
            subject=subject_key,
            score=result.score,
            total_questions=result.total_questions,
            accuracy=result.accuracy,
            duration=result.total_time,
            topics_studied=list(result.stats.topic_scores),
            average_response_time=result.stats.average_time,
        ))
        del self.state.sessions[:-self.settings.session_history_cap]

        self.update_streak_and_activity(result.accuracy >= self.settings.streak_pass_accuracy)
        self.state.analytics = analytics.recompute(self.state, self.settings, self.now_ms())
        self.save()
        logger.info(
            "Quiz completed for %s: %d/%d (%.1f%%)",
            subject_key, result.score, result.total_questions, result.accuracy,
        )

    def update_streak_and_activity(self, passed: bool) -> None:
        user = self.state.user
        now = self.clock()
        today = now.date()
        # Both checks compare against the last-active date from before this call
        last_date = local_date(user.last_active) if user.last_active is not None else None

        if last_date != today:
            user.days_active += 1
            user.last_active = to_ms(now)

        if passed:
            if last_date == today:
                return
            if last_date is None or last_date == today - timedelta(days=1):
                user.streak_current += 1
                user.streak_best = max(user.streak_best, user.streak_current)
            else:
                user.streak_current = 1
                user.streak_best = max(user.streak_best, user.streak_current)
        elif user.streak_current > 0:
            user.streak_current = 0

    def refresh_analytics(self) -> Analytics:
        """Recompute analytics against the current time without saving."""
        self.state.analytics = analytics.recompute(self.state, self.settings, self.now_ms())
        return self.state.analytics

    # -- lifecycle ---------------------------------------------------------

    def reset(self, confirm: Callable[[], bool]) -> bool:
        """Wipe all progress if ``confirm()`` returns True."""
        if not confirm():
            return False
        self.state = ProgressState.fresh(self.now_ms())
        self.save()
        logger.info("Progress reset")
        return True

    def export_progress(self) -> str:
        data = self.state.to_dict()
        data["exportDate"] = self.clock().isoformat()
        data["version"] = SNAPSHOT_VERSION
        return json.dumps(data, indent=2)

    def import_progress(self, blob: str) -> bool:
        """Replace the whole state with an exported snapshot; never merges."""
        try:
            data = json.loads(blob)
            if not isinstance(data, dict) or not data.get("version") or not data.get("user"):
                logger.warning("Rejected import: missing version marker or user state")
                return False
            imported = ProgressState.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError, OverflowError):
            logger.warning("Rejected import: malformed snapshot", exc_info=True)
            return False
        self.state = imported
        self.save()
        return True

    # -- dashboard ---------------------------------------------------------

    def get_average_session_time(self) -> float:
        sessions = self.state.sessions
        if not sessions:
            return 0.0
        return sum(s.duration for s in sessions) / len(sessions)

    def get_favorite_subject(self) -> Optional[str]:
        counts: dict[str, int] = {}
        for s in self.state.sessions:
            counts[s.subject] = counts.get(s.subject, 0) + 1
        if not counts:
            return None
        # First subject to reach the top count wins ties
        return max(counts, key=counts.get)

    def get_improvement_rate(self) -> float:
        sessions = self.state.sessions
        if len(sessions) < 5:
            return 0.0
        recent = sessions[-5:]
        older = sessions[-10:-5]
        if not older:
            return 0.0
        recent_avg = sum(s.accuracy for s in recent) / len(recent)
        older_avg = sum(s.accuracy for s in older) / len(older)
        return recent_avg - older_avg

    def get_overall_stats(self) -> dict:
        user = self.state.user
        return {
            "total_questions": user.total_questions,
            "accuracy": (user.correct_answers / user.total_questions * 100) if user.total_questions else 0.0,
            "streak_current": user.streak_current,
            "streak_best": user.streak_best,
            "days_active": user.days_active,
            "average_session_time": self.get_average_session_time(),
            "favorite_subject": self.get_favorite_subject(),
            "improvement_rate": self.get_improvement_rate(),
        }

    def get_subject_progress(self, catalog: Catalog) -> list[dict]:
        progress = []
        for subject in catalog:
            data = self.state.subjects.get(subject.key)
            answered = data.total_questions if data else 0
            progress.append({
                "key": subject.key,
                "name": subject.name,
                "mastery": data.mastery if data and answered else 0.0,
                "questions_answered": answered,
                "last_attempt": data.last_attempt if data else 0,
                "color": subject.color,
            })
        return sorted(progress, key=lambda p: p["mastery"], reverse=True)
