"""Quiz session controller: one quiz run from question selection to completion."""
import enum
import logging
import random
from datetime import datetime
from typing import Callable, Optional

from concept_refresher.catalog import Catalog, Question, Subject
from concept_refresher.config import QuizConfig
from concept_refresher.errors import InvalidInputError, SessionStateError
from concept_refresher.models import AnswerRecord, QuizResult, QuizStatistics, Tally
from concept_refresher.selector import select_questions
from concept_refresher.tracker import ProgressStore, to_ms

logger = logging.getLogger(__name__)


class SessionPhase(enum.Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def compute_statistics(answers: list[AnswerRecord], score: int, total_questions: int) -> QuizStatistics:
    topic_scores: dict[str, Tally] = {}
    difficulty_scores: dict[str, Tally] = {}
    total_time = 0
    fastest = None
    slowest = 0
    for answer in answers:
        topic_scores.setdefault(answer.topic, Tally()).add(answer.is_correct)
        difficulty_scores.setdefault(answer.difficulty, Tally()).add(answer.is_correct)
        total_time += answer.time_spent
        fastest = answer.time_spent if fastest is None else min(fastest, answer.time_spent)
        slowest = max(slowest, answer.time_spent)
    return QuizStatistics(
        score=score,
        total_questions=total_questions,
        accuracy=(score / total_questions * 100) if total_questions else 0.0,
        total_time=total_time,
        average_time=(total_time / len(answers)) if answers else 0.0,
        fastest_answer=fastest or 0,
        slowest_answer=slowest,
        topic_scores=topic_scores,
        difficulty_scores=difficulty_scores,
    )


class QuizSession:
    """State machine IDLE -> IN_PROGRESS -> COMPLETED over one quiz."""

    def __init__(
        self,
        catalog: Catalog,
        store: ProgressStore,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.catalog = catalog
        self.store = store
        self.clock = clock or store.clock
        self.rng = rng or random.Random()
        self.phase = SessionPhase.IDLE
        self.subject: Optional[Subject] = None
        self.config: Optional[QuizConfig] = None
        self._clear()

    def _clear(self) -> None:
        self.questions: list[Question] = []
        self.index = 0
        self.answers: list[AnswerRecord] = []
        self.score = 0
        self.started_at = 0
        self.question_started_at = 0
        self.answered_current = False
        self.statistics: Optional[QuizStatistics] = None

    def _now(self) -> int:
        return to_ms(self.clock())

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase is SessionPhase.IN_PROGRESS and self.index < self.total:
            return self.questions[self.index]
        return None

    @property
    def progress(self) -> tuple[int, int]:
        """(1-based position, total)."""
        return self.index + 1, self.total

    def start(self, subject_key: str, config: Optional[QuizConfig] = None) -> bool:
        if self.phase is not SessionPhase.IDLE:
            raise SessionStateError(f"Cannot start a quiz from {self.phase.value}")
        subject = self.catalog.get_subject(subject_key)
        if subject is None:
            logger.warning("Subject not found: %s", subject_key)
            return False
        config = config or QuizConfig()
        now = self._now()
        questions = select_questions(
            subject, config, self.store.get_subject_performance(subject_key), now, self.rng,
            self.store.settings,
        )
        if not questions:
            logger.warning("Subject %s has no questions", subject_key)
            return False

        self._clear()
        self.subject = subject
        self.config = config
        self.questions = questions
        self.started_at = now
        self.question_started_at = now
        self.phase = SessionPhase.IN_PROGRESS
        logger.debug("Started %s quiz with %d questions", subject_key, len(questions))
        return True

    def submit_answer(self, option_index: int) -> AnswerRecord:
        if self.phase is not SessionPhase.IN_PROGRESS:
            raise SessionStateError("No quiz in progress")
        if self.answered_current:
            raise SessionStateError("Current question already answered")
        question = self.questions[self.index]
        if not isinstance(option_index, int) or not 0 <= option_index < len(question.options):
            raise InvalidInputError(f"Option index {option_index!r} out of range")

        now = self._now()
        answer = AnswerRecord(
            question_id=question.id,
            selected_option=option_index,
            correct_option=question.correct,
            is_correct=option_index == question.correct,
            time_spent=max(0, now - self.question_started_at),
            timestamp=now,
            topic=question.topic,
            difficulty=question.difficulty,
            question_index=self.index,
        )
        self.store.record_answer(self.subject.key, answer)
        self.answers.append(answer)
        if answer.is_correct:
            self.score += 1
        self.answered_current = True
        return answer

    def advance(self) -> bool:
        """Move to the next question; returns False once the quiz is completed."""
        if self.phase is not SessionPhase.IN_PROGRESS:
            raise SessionStateError("No quiz in progress")
        if self.index + 1 < self.total:
            self.index += 1
            self.answered_current = False
            self.question_started_at = self._now()
            return True
        self.finish()
        return False

    def finish(self) -> QuizStatistics:
        """Complete the quiz now (last question done or time up) and record it."""
        if self.phase is not SessionPhase.IN_PROGRESS:
            raise SessionStateError("No quiz in progress")
        now = self._now()
        self.statistics = self.compute_statistics()
        self.store.record_quiz_completion(self.subject.key, QuizResult(
            score=self.score,
            total_questions=self.total,
            accuracy=self.statistics.accuracy,
            total_time=now - self.started_at,
            timestamp=now,
            stats=self.statistics,
            answers=list(self.answers),
        ))
        self.phase = SessionPhase.COMPLETED
        return self.statistics

    def compute_statistics(self) -> QuizStatistics:
        return compute_statistics(self.answers, self.score, self.total)

    def exit(self, confirm: Optional[Callable[[], bool]] = None) -> bool:
        """Abandon the quiz. Returns False if the user declined to leave."""
        if self.phase is SessionPhase.IN_PROGRESS and self.answers:
            if confirm is None or not confirm():
                return False
        self.phase = SessionPhase.IDLE
        self._clear()
        return True

    def retake(self) -> bool:
        if self.subject is None or self.phase is SessionPhase.IN_PROGRESS:
            return False
        self.phase = SessionPhase.IDLE
        return self.start(self.subject.key, self.config)

    def time_remaining(self) -> Optional[float]:
        """Seconds left under the time limit, or None without one."""
        if self.config is None or not self.config.time_limit or self.phase is not SessionPhase.IN_PROGRESS:
            return None
        elapsed = (self._now() - self.started_at) / 1000
        return max(0.0, self.config.time_limit - elapsed)

    def is_time_up(self) -> bool:
        remaining = self.time_remaining()
        return remaining is not None and remaining <= 0
