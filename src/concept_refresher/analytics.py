"""Weak/strong topic detection, recommendations and dashboard helpers."""
from dataclasses import dataclass
from typing import Optional

from concept_refresher.config import TrackerSettings
from concept_refresher.models import Analytics, ProgressState, Recommendation, TopicStat
from concept_refresher.scheduler import DAY_MS


@dataclass
class _TopicTotals:
    total: int = 0
    correct: int = 0


def aggregate_topics(state: ProgressState) -> dict[str, _TopicTotals]:
    """Sum topic counters across subjects; a topic name is a cross-subject key."""
    totals: dict[str, _TopicTotals] = {}
    for subject in state.subjects.values():
        for topic, perf in subject.topic_performance.items():
            t = totals.setdefault(topic, _TopicTotals())
            t.total += perf.total
            t.correct += perf.correct
    return totals


def classify_topics(
    state: ProgressState, settings: TrackerSettings,
) -> tuple[list[TopicStat], list[TopicStat]]:
    """Return (weak, strong) topics, each sorted and capped."""
    weak, strong = [], []
    for topic, t in aggregate_topics(state).items():
        if t.total < settings.min_topic_attempts:
            continue
        accuracy = t.correct / t.total
        if accuracy < settings.weak_topic_accuracy:
            weak.append(TopicStat(topic, accuracy, t.total))
        elif accuracy >= settings.strong_topic_accuracy:
            strong.append(TopicStat(topic, accuracy, t.total))
    weak.sort(key=lambda s: s.accuracy)
    strong.sort(key=lambda s: s.accuracy, reverse=True)
    return weak[:settings.max_weak_topics], strong[:settings.max_strong_topics]


def improvement_recommendation(weakest: TopicStat) -> Recommendation:
    return Recommendation(
        type="improvement",
        title=f"Focus on {weakest.topic}",
        description=(
            f"Your accuracy in {weakest.topic} is {weakest.accuracy * 100:.1f}%. "
            "Consider reviewing fundamentals."
        ),
        priority="high",
        action="study_topic",
        data=weakest.topic,
    )


def progression_recommendation(state: ProgressState, settings: TrackerSettings) -> Optional[Recommendation]:
    recent = state.sessions[-settings.progression_window:]
    if len(recent) < settings.progression_min_sessions:
        return None
    avg_accuracy = sum(s.accuracy for s in recent) / len(recent)
    if avg_accuracy < settings.progression_accuracy:
        return None
    return Recommendation(
        type="progression",
        title="Ready for Advanced Topics",
        description=(
            f"Your recent accuracy is {avg_accuracy:.1f}%. "
            "Consider challenging yourself with advanced questions."
        ),
        priority="medium",
        action="increase_difficulty",
    )


def engagement_recommendation(
    state: ProgressState, settings: TrackerSettings, now_ms: int,
) -> Optional[Recommendation]:
    if state.user.last_active is None:
        return None
    days_inactive = (now_ms - state.user.last_active) / DAY_MS
    if days_inactive < settings.inactivity_days:
        return None
    return Recommendation(
        type="engagement",
        title="Welcome Back!",
        description=(
            f"It's been {int(days_inactive)} days since your last session. "
            "Let's get back to learning!"
        ),
        priority="medium",
        action="continue_learning",
    )


def recompute(state: ProgressState, settings: TrackerSettings, now_ms: int) -> Analytics:
    """Derive the analytics snapshot from scratch; a pure function of the state."""
    weak, strong = classify_topics(state, settings)
    recommendations = []
    if weak:
        recommendations.append(improvement_recommendation(weak[0]))
    progression = progression_recommendation(state, settings)
    if progression:
        recommendations.append(progression)
    engagement = engagement_recommendation(state, settings, now_ms)
    if engagement:
        recommendations.append(engagement)
    return Analytics(
        weak_topics=weak,
        strong_topics=strong,
        recommendations=recommendations[:settings.max_recommendations],
    )


def get_mastery_label(pct: float) -> str:
    if pct >= 80:
        return "MASTERED"
    elif pct >= 60:
        return "PROFICIENT"
    elif pct > 0:
        return "LEARNING"
    return "NOT STARTED"


def get_mastery_color(pct: float) -> str:
    if pct >= 80:
        return "green"
    elif pct >= 60:
        return "yellow"
    elif pct > 0:
        return "dark_orange"
    return "dim"


def format_duration(milliseconds: float) -> str:
    seconds = int(milliseconds // 1000)
    minutes, remaining = divmod(seconds, 60)
    if minutes > 0:
        return f"{minutes}m {remaining}s"
    return f"{remaining}s"
