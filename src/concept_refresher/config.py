"""Application configuration and tuning constants."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from concept_refresher.errors import InvalidInputError

DEFAULT_DB_PATH = str(Path.home() / ".concept_refresher" / "progress.db")

DIFFICULTIES = ("beginner", "intermediate", "advanced")
DIFFICULTY_FILTERS = ("mixed",) + DIFFICULTIES


def get_db_path() -> str:
    return os.environ.get("CONCEPT_REFRESHER_DB", DEFAULT_DB_PATH)


@dataclass
class QuizConfig:
    question_count: int = 10
    difficulty: str = "mixed"
    adaptive_learning: bool = True
    time_limit: Optional[int] = None  # seconds

    def __post_init__(self):
        if self.difficulty not in DIFFICULTY_FILTERS:
            raise InvalidInputError(f"Unknown difficulty filter: {self.difficulty!r}")
        if self.question_count < 1:
            raise InvalidInputError("question_count must be at least 1")

    @classmethod
    def from_options(cls, options: dict | None = None) -> "QuizConfig":
        """Build a config from caller options, camelCase or snake_case keys."""
        options = options or {}

        def pick(camel: str, snake: str, default):
            if camel in options:
                return options[camel]
            return options.get(snake, default)

        return cls(
            question_count=int(pick("questionCount", "question_count", 10)),
            difficulty=pick("difficulty", "difficulty", "mixed") or "mixed",
            adaptive_learning=pick("adaptiveLearning", "adaptive_learning", True) is not False,
            time_limit=pick("timeLimit", "time_limit", None) or None,
        )


@dataclass
class TrackerSettings:
    # Streak and engagement
    streak_pass_accuracy: float = 70.0
    inactivity_days: float = 3.0
    # Analytics topic classification
    weak_topic_accuracy: float = 0.6
    strong_topic_accuracy: float = 0.8
    min_topic_attempts: int = 3
    max_weak_topics: int = 5
    max_strong_topics: int = 5
    max_recommendations: int = 3
    # Progression recommendation
    progression_window: int = 7
    progression_min_sessions: int = 3
    progression_accuracy: float = 80.0
    # Retention caps
    quiz_history_cap: int = 50
    session_history_cap: int = 100
    # Adaptive selection
    selector_weak_accuracy: float = 0.7
    selector_strong_accuracy: float = 0.8
    strong_topic_share: float = 0.3


@dataclass
class GeneratorConfig:
    base_url: Optional[str] = None
    model: str = "llama-3.2-1b-instruct"
    timeout: float = 30.0
    temperature: float = 0.7

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        return cls(
            base_url=os.environ.get("CONCEPT_REFRESHER_LLM_URL") or None,
            model=os.environ.get("CONCEPT_REFRESHER_LLM_MODEL", cls.model),
            timeout=float(os.environ.get("CONCEPT_REFRESHER_LLM_TIMEOUT", cls.timeout)),
        )
