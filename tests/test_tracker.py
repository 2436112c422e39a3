# tests/test_tracker.py
import json
import sqlite3
from unittest.mock import patch

from concept_refresher.db import PROGRESS_KEY, init_db, write_value
from concept_refresher.models import AnswerRecord, QuizResult, QuizStatistics, Tally
from concept_refresher.tracker import ProgressStore


def answer(qid="ds-1", correct=True, topic="Arrays", difficulty="beginner", ts=0, time_spent=1000):
    return AnswerRecord(
        question_id=qid,
        selected_option=1 if correct else 0,
        correct_option=1,
        is_correct=correct,
        time_spent=time_spent,
        timestamp=ts,
        topic=topic,
        difficulty=difficulty,
    )


def result(accuracy, ts=0, score=None, total=10, topics=None):
    score = round(accuracy * total / 100) if score is None else score
    stats = QuizStatistics(
        score=score, total_questions=total, accuracy=accuracy,
        topic_scores=topics or {"Arrays": Tally(score, total)},
    )
    return QuizResult(score=score, total_questions=total, accuracy=accuracy, total_time=60_000, timestamp=ts, stats=stats)


def test_fresh_store(store, clock):
    assert store.state.user.total_questions == 0
    assert store.state.user.last_active is None
    assert store.state.user.start_date == store.now_ms()


def test_record_answer_updates_aggregates(store):
    store.record_answer("data_structures", answer(correct=True, time_spent=2000))
    store.record_answer("data_structures", answer(correct=False, time_spent=4000))
    perf = store.get_subject_performance("data_structures")
    assert perf.total_questions == 2
    assert perf.correct_answers == 1
    assert perf.topic_performance["Arrays"].total == 2
    assert perf.topic_performance["Arrays"].average_time == 3000
    assert perf.difficulty_performance["beginner"].correct == 1
    assert perf.question_history["ds-1"].attempts == 2
    assert perf.question_history["ds-1"].repetition_level == 0
    assert store.state.user.total_questions == 2
    assert store.state.user.correct_answers == 1


def test_record_answer_creates_unknown_subject(store):
    store.record_answer("brand_new", answer())
    assert store.get_subject_performance("brand_new").total_questions == 1


def test_counts_match_calls(store):
    outcomes = [True, False, True, True, False, False, True]
    for i, ok in enumerate(outcomes):
        store.record_answer("algorithms", answer(qid=f"alg-{i % 3}", correct=ok, topic="Sorting"))
    perf = store.get_subject_performance("algorithms")
    assert perf.total_questions == len(outcomes)
    assert perf.correct_answers == sum(outcomes) <= perf.total_questions
    assert all(0 <= h.repetition_level <= 5 for h in perf.question_history.values())


def test_state_persists_across_instances(tmp_db, clock):
    store = ProgressStore(tmp_db, clock=clock)
    store.record_answer("algorithms", answer(topic="Sorting"))
    reloaded = ProgressStore(tmp_db, clock=clock)
    assert reloaded.state == store.state


def test_quiz_history_capped_at_50_most_recent(store):
    for i in range(55):
        store.record_quiz_completion("algorithms", result(50.0, ts=i))
    history = store.get_subject_performance("algorithms").quiz_history
    assert len(history) == 50
    assert [q.timestamp for q in history] == list(range(5, 55))


def test_sessions_capped_at_100(store):
    for i in range(105):
        store.record_quiz_completion("algorithms", result(50.0, ts=i))
    assert len(store.state.sessions) == 100
    assert store.state.sessions[0].timestamp == 5


def test_streak_pass_pass_fail_on_consecutive_days(store, clock):
    streaks = []
    for acc in (75, 80, 20):
        store.record_quiz_completion("algorithms", result(acc))
        streaks.append(store.state.user.streak_current)
        clock.advance(days=1)
    assert streaks == [1, 2, 0]
    assert store.state.user.streak_best == 2
    assert store.state.user.days_active == 3


def test_streak_counts_once_per_day(store, clock):
    store.record_quiz_completion("algorithms", result(90))
    clock.advance(hours=2)
    store.record_quiz_completion("algorithms", result(90))
    assert store.state.user.streak_current == 1
    assert store.state.user.days_active == 1


def test_streak_resets_to_one_after_gap(store, clock):
    store.record_quiz_completion("algorithms", result(90))
    clock.advance(days=1)
    store.record_quiz_completion("algorithms", result(90))
    clock.advance(days=3)
    store.record_quiz_completion("algorithms", result(90))
    assert store.state.user.streak_current == 1
    assert store.state.user.streak_best == 2


def test_streak_never_exceeds_best(store, clock):
    pattern = [90, 20, 90, 90, 10, 95, 95, 95, 0, 80]
    gaps = [1, 1, 2, 1, 0, 1, 1, 5, 1, 1]
    for acc, gap in zip(pattern, gaps):
        store.record_quiz_completion("algorithms", result(acc))
        user = store.state.user
        assert user.streak_current <= user.streak_best
        clock.advance(days=gap)


def test_completion_recomputes_analytics(store):
    for i in range(4):
        store.record_answer("algorithms", answer(qid=f"alg-{i}", correct=i == 0, topic="Sorting"))
    store.record_quiz_completion("algorithms", result(25.0, score=1, total=4))
    assert [t.topic for t in store.state.analytics.weak_topics] == ["Sorting"]
    assert store.state.analytics.recommendations[0].title == "Focus on Sorting"


def test_reset_requires_confirmation(store):
    store.record_answer("algorithms", answer())
    assert store.reset(confirm=lambda: False) is False
    assert store.state.user.total_questions == 1
    assert store.reset(confirm=lambda: True) is True
    assert store.state.user.total_questions == 0
    assert store.state.subjects == {}


def test_reset_is_persisted(tmp_db, clock):
    store = ProgressStore(tmp_db, clock=clock)
    store.record_answer("algorithms", answer())
    store.reset(confirm=lambda: True)
    assert ProgressStore(tmp_db, clock=clock).state.subjects == {}


def test_export_import_round_trip(store, clock):
    store.record_answer("algorithms", answer(topic="Sorting"))
    store.record_quiz_completion("algorithms", result(80.0))
    before = store.state.to_dict()
    blob = store.export_progress()
    data = json.loads(blob)
    assert data["version"] == "1.0"
    assert data["exportDate"] == clock().isoformat()

    store.reset(confirm=lambda: True)
    assert store.import_progress(blob) is True
    assert store.state.to_dict() == before


def test_import_rejects_snapshot_without_version(store):
    store.record_answer("algorithms", answer())
    before = store.state.to_dict()
    data = json.loads(store.export_progress())
    del data["version"]
    assert store.import_progress(json.dumps(data)) is False
    assert store.state.to_dict() == before


def test_import_rejects_malformed_blobs(store):
    before = store.state.to_dict()
    assert store.import_progress("not json") is False
    assert store.import_progress(json.dumps({"version": "1.0"})) is False
    assert store.import_progress(json.dumps({"version": "1.0", "user": {"totalQuestions": 1}})) is False
    assert store.import_progress(json.dumps([1, 2])) is False
    assert store.import_progress('{"version": "1.0", "user": {"startDate": Infinity}}') is False
    assert store.state.to_dict() == before


def test_unreadable_snapshot_starts_fresh(tmp_db, clock):
    init_db(tmp_db)
    write_value(tmp_db, "{broken", key=PROGRESS_KEY)
    store = ProgressStore(tmp_db, clock=clock)
    assert store.state.user.total_questions == 0


def test_save_failure_keeps_memory_state(store):
    with patch("concept_refresher.tracker.write_value", side_effect=sqlite3.OperationalError("disk full")):
        store.record_answer("algorithms", answer())
        assert store.save() is False
    assert store.state.user.total_questions == 1


def test_overall_stats(store, clock):
    store.record_answer("algorithms", answer(correct=True))
    store.record_answer("algorithms", answer(correct=False))
    store.record_quiz_completion("algorithms", result(50.0))
    store.record_quiz_completion("mathematics", result(50.0))
    store.record_quiz_completion("algorithms", result(50.0))
    stats = store.get_overall_stats()
    assert stats["total_questions"] == 2
    assert stats["accuracy"] == 50.0
    assert stats["favorite_subject"] == "algorithms"
    assert stats["average_session_time"] == 60_000
    assert stats["improvement_rate"] == 0.0


def test_improvement_rate(store):
    for acc in [50] * 5 + [70] * 5:
        store.record_quiz_completion("algorithms", result(float(acc)))
    assert store.get_improvement_rate() == 20.0


def test_subject_progress_sorted_by_mastery(store, catalog):
    store.record_answer("mathematics", answer(correct=True, topic="Geometry"))
    store.record_answer("algorithms", answer(correct=False, topic="Sorting"))
    progress = store.get_subject_progress(catalog)
    assert [p["key"] for p in progress][0] == "mathematics"
    assert progress[0]["mastery"] == 100.0
    assert len(progress) == 3
