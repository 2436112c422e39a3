"""Data classes for recorded performance and derived analytics.

Every aggregate starts from its zero-state constructor. ``to_dict`` and
``from_dict`` use the camelCase keys of the persisted JSON snapshot.
"""
from dataclasses import dataclass, field
from typing import Optional

SNAPSHOT_VERSION = "1.0"


def running_mean(old_mean: float, count: int, value: float) -> float:
    """Incremental mean where ``count`` already includes ``value``."""
    return (old_mean * (count - 1) + value) / count


def _ratio(correct: int, total: int) -> float:
    return correct / total if total else 0.0


@dataclass
class Tally:
    correct: int = 0
    total: int = 0

    def add(self, is_correct: bool) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1

    def to_dict(self) -> dict:
        return {"correct": self.correct, "total": self.total}

    @staticmethod
    def from_dict(d: dict) -> "Tally":
        return Tally(correct=int(d.get("correct", 0)), total=int(d.get("total", 0)))


def _tallies_to_dict(tallies: dict[str, Tally]) -> dict:
    return {name: t.to_dict() for name, t in tallies.items()}


def _tallies_from_dict(d: dict) -> dict[str, Tally]:
    return {name: Tally.from_dict(t) for name, t in (d or {}).items()}


@dataclass(frozen=True)
class AnswerRecord:
    question_id: str
    selected_option: int
    correct_option: int
    is_correct: bool
    time_spent: int  # ms
    timestamp: int  # epoch ms
    topic: str
    difficulty: str
    question_index: int = 0


@dataclass
class QuestionHistory:
    attempts: int = 0
    correct: int = 0
    last_attempt: int = 0
    repetition_level: int = 0
    average_time: float = 0.0
    last_correct: bool = False

    def record(self, is_correct: bool, time_spent: int, timestamp: int, max_level: int = 5) -> None:
        self.attempts += 1
        if is_correct:
            self.correct += 1
            self.repetition_level = min(self.repetition_level + 1, max_level)
        else:
            self.repetition_level = max(self.repetition_level - 1, 0)
        self.last_correct = is_correct
        self.last_attempt = timestamp
        self.average_time = running_mean(self.average_time, self.attempts, time_spent)

    def to_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "correct": self.correct,
            "lastAttempt": self.last_attempt,
            "repetitionLevel": self.repetition_level,
            "averageTime": self.average_time,
            "lastCorrect": self.last_correct,
        }

    @staticmethod
    def from_dict(d: dict) -> "QuestionHistory":
        return QuestionHistory(
            attempts=int(d.get("attempts", 0)),
            correct=int(d.get("correct", 0)),
            last_attempt=int(d.get("lastAttempt", 0)),
            repetition_level=max(0, min(int(d.get("repetitionLevel", 0)), 5)),
            average_time=float(d.get("averageTime", 0.0)),
            last_correct=bool(d.get("lastCorrect", False)),
        )


@dataclass
class TopicPerformance:
    total: int = 0
    correct: int = 0
    average_time: float = 0.0
    last_attempt: int = 0

    @property
    def accuracy(self) -> float:
        return _ratio(self.correct, self.total)

    def record(self, is_correct: bool, time_spent: int, timestamp: int) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1
        self.average_time = running_mean(self.average_time, self.total, time_spent)
        self.last_attempt = timestamp

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "correct": self.correct,
            "averageTime": self.average_time,
            "lastAttempt": self.last_attempt,
        }

    @staticmethod
    def from_dict(d: dict) -> "TopicPerformance":
        return TopicPerformance(
            total=int(d.get("total", 0)),
            correct=int(d.get("correct", 0)),
            average_time=float(d.get("averageTime", 0.0)),
            last_attempt=int(d.get("lastAttempt", 0)),
        )


@dataclass
class DifficultyPerformance:
    total: int = 0
    correct: int = 0
    average_time: float = 0.0

    @property
    def accuracy(self) -> float:
        return _ratio(self.correct, self.total)

    def record(self, is_correct: bool, time_spent: int) -> None:
        self.total += 1
        if is_correct:
            self.correct += 1
        self.average_time = running_mean(self.average_time, self.total, time_spent)

    def to_dict(self) -> dict:
        return {"total": self.total, "correct": self.correct, "averageTime": self.average_time}

    @staticmethod
    def from_dict(d: dict) -> "DifficultyPerformance":
        return DifficultyPerformance(
            total=int(d.get("total", 0)),
            correct=int(d.get("correct", 0)),
            average_time=float(d.get("averageTime", 0.0)),
        )


@dataclass
class QuizStatistics:
    score: int = 0
    total_questions: int = 0
    accuracy: float = 0.0
    total_time: int = 0
    average_time: float = 0.0
    fastest_answer: int = 0
    slowest_answer: int = 0
    topic_scores: dict[str, Tally] = field(default_factory=dict)
    difficulty_scores: dict[str, Tally] = field(default_factory=dict)


@dataclass
class QuizResult:
    """What a finished quiz hands to the progress store."""

    score: int
    total_questions: int
    accuracy: float
    total_time: int  # wall-clock duration of the quiz, ms
    timestamp: int
    stats: QuizStatistics
    answers: list[AnswerRecord] = field(default_factory=list)


@dataclass
class QuizCompletion:
    timestamp: int
    score: int
    total_questions: int
    accuracy: float
    total_time: int
    topic_breakdown: dict[str, Tally] = field(default_factory=dict)
    difficulty_breakdown: dict[str, Tally] = field(default_factory=dict)

    @staticmethod
    def from_result(result: QuizResult) -> "QuizCompletion":
        return QuizCompletion(
            timestamp=result.timestamp,
            score=result.score,
            total_questions=result.total_questions,
            accuracy=result.accuracy,
            total_time=result.total_time,
            topic_breakdown={k: Tally(v.correct, v.total) for k, v in result.stats.topic_scores.items()},
            difficulty_breakdown={k: Tally(v.correct, v.total) for k, v in result.stats.difficulty_scores.items()},
        )

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "score": self.score,
            "totalQuestions": self.total_questions,
            "accuracy": self.accuracy,
            "totalTime": self.total_time,
            "topicBreakdown": _tallies_to_dict(self.topic_breakdown),
            "difficultyBreakdown": _tallies_to_dict(self.difficulty_breakdown),
        }

    @staticmethod
    def from_dict(d: dict) -> "QuizCompletion":
        return QuizCompletion(
            timestamp=int(d["timestamp"]),
            score=int(d.get("score", 0)),
            total_questions=int(d.get("totalQuestions", 0)),
            accuracy=float(d.get("accuracy", 0.0)),
            total_time=int(d.get("totalTime", 0)),
            topic_breakdown=_tallies_from_dict(d.get("topicBreakdown")),
            difficulty_breakdown=_tallies_from_dict(d.get("difficultyBreakdown")),
        )


@dataclass
class SubjectPerformance:
    total_questions: int = 0
    correct_answers: int = 0
    total_time: int = 0
    last_attempt: int = 0
    topic_performance: dict[str, TopicPerformance] = field(default_factory=dict)
    difficulty_performance: dict[str, DifficultyPerformance] = field(default_factory=dict)
    question_history: dict[str, QuestionHistory] = field(default_factory=dict)
    quiz_history: list[QuizCompletion] = field(default_factory=list)

    @property
    def mastery(self) -> float:
        return _ratio(self.correct_answers, self.total_questions) * 100

    def topic(self, name: str) -> TopicPerformance:
        return self.topic_performance.setdefault(name, TopicPerformance())

    def difficulty(self, name: str) -> DifficultyPerformance:
        return self.difficulty_performance.setdefault(name, DifficultyPerformance())

    def history(self, question_id: str) -> QuestionHistory:
        return self.question_history.setdefault(question_id, QuestionHistory())

    def to_dict(self) -> dict:
        return {
            "totalQuestions": self.total_questions,
            "correctAnswers": self.correct_answers,
            "totalTime": self.total_time,
            "lastAttempt": self.last_attempt,
            "topicPerformance": {k: v.to_dict() for k, v in self.topic_performance.items()},
            "difficultyPerformance": {k: v.to_dict() for k, v in self.difficulty_performance.items()},
            "questionHistory": {k: v.to_dict() for k, v in self.question_history.items()},
            "quizHistory": [q.to_dict() for q in self.quiz_history],
        }

    @staticmethod
    def from_dict(d: dict) -> "SubjectPerformance":
        return SubjectPerformance(
            total_questions=int(d.get("totalQuestions", 0)),
            correct_answers=int(d.get("correctAnswers", 0)),
            total_time=int(d.get("totalTime", 0)),
            last_attempt=int(d.get("lastAttempt", 0)),
            topic_performance={
                k: TopicPerformance.from_dict(v) for k, v in (d.get("topicPerformance") or {}).items()
            },
            difficulty_performance={
                k: DifficultyPerformance.from_dict(v) for k, v in (d.get("difficultyPerformance") or {}).items()
            },
            question_history={
                k: QuestionHistory.from_dict(v) for k, v in (d.get("questionHistory") or {}).items()
            },
            quiz_history=[QuizCompletion.from_dict(q) for q in d.get("quizHistory") or []],
        )


@dataclass
class UserState:
    start_date: int
    total_questions: int = 0
    correct_answers: int = 0
    total_time: int = 0
    streak_current: int = 0
    streak_best: int = 0
    days_active: int = 0
    last_active: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "totalQuestions": self.total_questions,
            "correctAnswers": self.correct_answers,
            "totalTime": self.total_time,
            "streakCurrent": self.streak_current,
            "streakBest": self.streak_best,
            "daysActive": self.days_active,
            "lastActive": self.last_active,
            "startDate": self.start_date,
        }

    @staticmethod
    def from_dict(d: dict) -> "UserState":
        last_active = d.get("lastActive")
        return UserState(
            start_date=int(d["startDate"]),
            total_questions=int(d.get("totalQuestions", 0)),
            correct_answers=int(d.get("correctAnswers", 0)),
            total_time=int(d.get("totalTime", 0)),
            streak_current=int(d.get("streakCurrent", 0)),
            streak_best=int(d.get("streakBest", 0)),
            days_active=int(d.get("daysActive", 0)),
            last_active=int(last_active) if last_active is not None else None,
        )


@dataclass
class SessionRecord:
    timestamp: int
    subject: str
    score: int
    total_questions: int
    accuracy: float
    duration: int
    topics_studied: list[str] = field(default_factory=list)
    average_response_time: float = 0.0

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "subject": self.subject,
            "score": self.score,
            "totalQuestions": self.total_questions,
            "accuracy": self.accuracy,
            "duration": self.duration,
            "topicsStudied": list(self.topics_studied),
            "averageResponseTime": self.average_response_time,
        }

    @staticmethod
    def from_dict(d: dict) -> "SessionRecord":
        return SessionRecord(
            timestamp=int(d["timestamp"]),
            subject=str(d["subject"]),
            score=int(d.get("score", 0)),
            total_questions=int(d.get("totalQuestions", 0)),
            accuracy=float(d.get("accuracy", 0.0)),
            duration=int(d.get("duration", 0)),
            topics_studied=list(d.get("topicsStudied") or []),
            average_response_time=float(d.get("averageResponseTime", 0.0)),
        )


@dataclass
class TopicStat:
    topic: str
    accuracy: float
    attempts: int

    def to_dict(self) -> dict:
        return {"topic": self.topic, "accuracy": self.accuracy, "attempts": self.attempts}

    @staticmethod
    def from_dict(d: dict) -> "TopicStat":
        return TopicStat(topic=d["topic"], accuracy=float(d["accuracy"]), attempts=int(d["attempts"]))


@dataclass
class Recommendation:
    type: str  # improvement | progression | engagement
    title: str
    description: str
    priority: str
    action: str
    data: Optional[str] = None

    def to_dict(self) -> dict:
        d = {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "action": self.action,
        }
        if self.data is not None:
            d["data"] = self.data
        return d

    @staticmethod
    def from_dict(d: dict) -> "Recommendation":
        return Recommendation(
            type=d["type"],
            title=d.get("title", ""),
            description=d.get("description", ""),
            priority=d.get("priority", "medium"),
            action=d.get("action", ""),
            data=d.get("data"),
        )


@dataclass
class Analytics:
    weak_topics: list[TopicStat] = field(default_factory=list)
    strong_topics: list[TopicStat] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "weakTopics": [t.to_dict() for t in self.weak_topics],
            "strongTopics": [t.to_dict() for t in self.strong_topics],
            "recommendations": [r.to_dict() for r in self.recommendations],
        }

    @staticmethod
    def from_dict(d: dict) -> "Analytics":
        return Analytics(
            weak_topics=[TopicStat.from_dict(t) for t in d.get("weakTopics") or []],
            strong_topics=[TopicStat.from_dict(t) for t in d.get("strongTopics") or []],
            recommendations=[Recommendation.from_dict(r) for r in d.get("recommendations") or []],
        )


@dataclass
class ProgressState:
    user: UserState
    subjects: dict[str, SubjectPerformance] = field(default_factory=dict)
    sessions: list[SessionRecord] = field(default_factory=list)
    analytics: Analytics = field(default_factory=Analytics)

    @staticmethod
    def fresh(now_ms: int) -> "ProgressState":
        return ProgressState(user=UserState(start_date=now_ms))

    def to_dict(self) -> dict:
        return {
            "user": self.user.to_dict(),
            "subjects": {k: v.to_dict() for k, v in self.subjects.items()},
            "sessions": [s.to_dict() for s in self.sessions],
            "analytics": self.analytics.to_dict(),
        }

    @staticmethod
    def from_dict(d: dict) -> "ProgressState":
        return ProgressState(
            user=UserState.from_dict(d["user"]),
            subjects={k: SubjectPerformance.from_dict(v) for k, v in (d.get("subjects") or {}).items()},
            sessions=[SessionRecord.from_dict(s) for s in d.get("sessions") or []],
            analytics=Analytics.from_dict(d.get("analytics") or {}),
        )
