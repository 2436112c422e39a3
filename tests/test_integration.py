# tests/test_integration.py
"""End-to-end test of the core workflow."""
import random

from concept_refresher.assistant import StudyAssistant
from concept_refresher.catalog import load_catalog
from concept_refresher.config import QuizConfig
from concept_refresher.session import QuizSession, SessionPhase
from concept_refresher.tracker import ProgressStore


def take_quiz(session, clock, subject, right):
    """Answer a full quiz, getting the first ``right`` questions correct."""
    session.exit()
    assert session.start(subject, QuizConfig(question_count=5))
    for i in range(session.total):
        q = session.current_question
        clock.advance(seconds=3)
        session.submit_answer(q.correct if i < right else (q.correct + 1) % 4)
        session.advance()
    assert session.phase is SessionPhase.COMPLETED
    return session.statistics


def test_multi_day_workflow(tmp_db, tmp_path, clock):
    catalog = load_catalog()
    store = ProgressStore(tmp_db, clock=clock)
    session = QuizSession(catalog, store, rng=random.Random(3))

    # Day 1 and 2: strong algorithms sessions; day 3: a poor networks session
    assert take_quiz(session, clock, "algorithms", right=5).accuracy == 100.0
    clock.advance(days=1)
    assert take_quiz(session, clock, "algorithms", right=4).accuracy == 80.0
    clock.advance(days=1)
    assert take_quiz(session, clock, "computer_networks", right=1).accuracy == 20.0

    user = store.state.user
    assert user.streak_current == 0
    assert user.streak_best == 2
    assert user.days_active == 3
    assert user.total_questions == 15
    assert user.correct_answers == 10

    algorithms = store.get_subject_performance("algorithms")
    assert algorithms.total_questions == 10
    assert len(algorithms.quiz_history) == 2
    for history in algorithms.question_history.values():
        assert history.attempts == 2
        assert 0 <= history.repetition_level <= 5

    # Reload from disk and keep going
    reopened = ProgressStore(tmp_db, clock=clock)
    assert reopened.state == store.state

    # Move a previous snapshot into a fresh database
    other_store = ProgressStore(str(tmp_path / "other.db"), clock=clock)
    assert other_store.import_progress(store.export_progress())
    assert other_store.state.to_dict() == store.state.to_dict()

    # The assistant reads the same store
    assistant = StudyAssistant(catalog, store, rng=random.Random(0))
    assert "Computer Networks" in assistant.respond("Quiz me on computer networks")
    progress = store.get_subject_progress(catalog)
    assert progress[0]["key"] == "algorithms"
    assert progress[0]["mastery"] == 90.0
