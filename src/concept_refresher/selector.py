"""Adaptive question selection for a quiz."""
import math
import random
from typing import Optional

from concept_refresher.catalog import Question, Subject
from concept_refresher.config import QuizConfig, TrackerSettings
from concept_refresher.models import SubjectPerformance
from concept_refresher.scheduler import order_by_urgency


def _shuffled(items: list, rng: random.Random) -> list:
    items = list(items)
    rng.shuffle(items)
    return items


def classify_topics(
    performance: SubjectPerformance,
    weak_below: float = 0.7,
    strong_from: float = 0.8,
) -> tuple[set[str], set[str]]:
    """Split a subject's attempted topics into (weak, strong) by accuracy."""
    weak, strong = set(), set()
    for topic, perf in performance.topic_performance.items():
        if not perf.total:
            continue
        if perf.accuracy < weak_below:
            weak.add(topic)
        elif perf.accuracy >= strong_from:
            strong.add(topic)
    return weak, strong


def adaptive_order(
    questions: list[Question],
    performance: SubjectPerformance,
    rng: random.Random,
    settings: TrackerSettings,
) -> list[Question]:
    """Weak-topic questions first, then untouched/middling, then a capped share of strong ones."""
    weak_topics, strong_topics = classify_topics(
        performance, settings.selector_weak_accuracy, settings.selector_strong_accuracy,
    )
    weak = [q for q in questions if q.topic in weak_topics]
    strong = [q for q in questions if q.topic in strong_topics]
    other = [q for q in questions if q.topic not in weak_topics and q.topic not in strong_topics]
    strong_cap = math.ceil(len(questions) * settings.strong_topic_share)
    return _shuffled(weak, rng) + _shuffled(other, rng) + _shuffled(strong, rng)[:strong_cap]


def select_questions(
    subject: Subject,
    config: QuizConfig,
    performance: Optional[SubjectPerformance],
    now_ms: int,
    rng: Optional[random.Random] = None,
    settings: Optional[TrackerSettings] = None,
) -> list[Question]:
    rng = rng or random.Random()
    settings = settings or TrackerSettings()
    questions = list(subject.questions)

    if config.adaptive_learning and performance is not None:
        questions = adaptive_order(questions, performance, rng, settings)

    if config.difficulty != "mixed":
        questions = [q for q in questions if q.difficulty == config.difficulty]

    histories = performance.question_history if performance is not None else {}
    questions = order_by_urgency(questions, histories, now_ms)

    if len(questions) < config.question_count:
        # Backfill relaxes every filter above
        included = {q.id for q in questions}
        questions += [q for q in subject.questions if q.id not in included]

    return _shuffled(questions, rng)[:config.question_count]


def pick_question(
    subject: Subject,
    performance: Optional[SubjectPerformance],
    now_ms: int,
    rng: Optional[random.Random] = None,
    difficulty: str = "mixed",
) -> Optional[Question]:
    config = QuizConfig(question_count=1, difficulty=difficulty)
    selected = select_questions(subject, config, performance, now_ms, rng)
    return selected[0] if selected else None
