import random
from datetime import datetime, timedelta

import pytest

from concept_refresher.catalog import Catalog
from concept_refresher.tracker import ProgressStore


def make_question(qid, topic, difficulty="beginner", correct=1):
    return {
        "id": qid,
        "question": f"Question {qid}?",
        "options": ["w", "x", "y", "z"],
        "correct": correct,
        "explanation": f"Because of {topic}.",
        "difficulty": difficulty,
        "topic": topic,
    }


SAMPLE_CATALOG = {
    "subjects": [
        {
            "key": "data_structures",
            "name": "Data Structures",
            "icon": "🏗️",
            "difficulty": "intermediate",
            "color": "#4ecdc4",
            "questions": [
                make_question("ds-1", "Arrays", "beginner"),
                make_question("ds-2", "Arrays", "beginner", correct=0),
                make_question("ds-3", "Trees", "intermediate"),
                make_question("ds-4", "Trees", "intermediate", correct=2),
                make_question("ds-5", "Hash Tables", "advanced"),
                make_question("ds-6", "Hash Tables", "advanced", correct=3),
            ],
        },
        {
            "key": "algorithms",
            "name": "Algorithms",
            "questions": [make_question(f"alg-{i}", "Sorting") for i in range(1, 4)],
        },
        {
            "key": "mathematics",
            "name": "Mathematics",
            "questions": [make_question(f"math-{i}", "Geometry") for i in range(1, 4)],
        },
    ]
}


class FakeClock:
    """Callable clock that tests move forward by hand."""

    def __init__(self, start=datetime(2024, 5, 6, 10, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_progress.db")
    return db_path


@pytest.fixture
def catalog():
    return Catalog.from_dict(SAMPLE_CATALOG)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def store(tmp_db, clock):
    return ProgressStore(tmp_db, clock=clock)
