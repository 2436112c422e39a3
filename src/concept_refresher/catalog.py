"""Read-only question catalog loaded from bundled or user-supplied files."""
import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from concept_refresher.config import DIFFICULTIES
from concept_refresher.errors import InvalidInputError

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"
DEFAULT_CATALOG = CONTENT_DIR / "subjects.json"

OPTION_COUNT = 4


@dataclass(frozen=True)
class Question:
    id: str
    question: str
    options: tuple[str, ...]
    correct: int
    explanation: str
    difficulty: str
    topic: str
    subject: str

    @property
    def correct_text(self) -> str:
        return self.options[self.correct]


@dataclass(frozen=True)
class Subject:
    key: str
    name: str
    icon: str
    description: str
    difficulty: str
    color: str
    topics: tuple[str, ...]
    questions: tuple[Question, ...]


def question_id_for(subject_key: str, text: str) -> str:
    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()[:10]
    return f"{subject_key}-{digest}"


def parse_question(subject_key: str, record: dict) -> Question:
    """Validate one raw question record and build a Question."""
    text = record.get("question")
    if not text:
        raise InvalidInputError(f"Question in {subject_key!r} has no text")
    options = record.get("options") or []
    if len(options) != OPTION_COUNT:
        raise InvalidInputError(f"{text!r} must have exactly {OPTION_COUNT} options, got {len(options)}")
    correct = record.get("correct")
    if not isinstance(correct, int) or isinstance(correct, bool) or not 0 <= correct < OPTION_COUNT:
        raise InvalidInputError(f"{text!r} has invalid correct index {correct!r}")
    difficulty = record.get("difficulty", "intermediate")
    if difficulty not in DIFFICULTIES:
        raise InvalidInputError(f"{text!r} has unknown difficulty {difficulty!r}")
    return Question(
        id=str(record.get("id") or question_id_for(subject_key, text)),
        question=text,
        options=tuple(str(o) for o in options),
        correct=correct,
        explanation=record.get("explanation", ""),
        difficulty=difficulty,
        topic=record.get("topic") or "General",
        subject=subject_key,
    )


def parse_subject(record: dict) -> Subject:
    key = record.get("key")
    if not key:
        raise InvalidInputError("Subject record has no key")
    questions = tuple(parse_question(key, q) for q in record.get("questions") or [])
    return Subject(
        key=key,
        name=record.get("name") or key.replace("_", " ").title(),
        icon=record.get("icon", ""),
        description=record.get("description", ""),
        difficulty=record.get("difficulty", "intermediate"),
        color=record.get("color", ""),
        topics=tuple(record.get("topics") or sorted({q.topic for q in questions})),
        questions=questions,
    )


def read_catalog_file(file_path: str | Path) -> dict:
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        return json.loads(path.read_text(encoding="utf-8"))
    elif suffix in (".yaml", ".yml"):
        import yaml
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    raise InvalidInputError(f"Unsupported catalog format: {path.name}")


class Catalog:
    """Subjects keyed by subject key, with an index of questions by id."""

    def __init__(self, subjects: list[Subject]):
        self._subjects: dict[str, Subject] = {}
        self._questions: dict[str, Question] = {}
        for subject in subjects:
            if subject.key in self._subjects:
                raise InvalidInputError(f"Duplicate subject key {subject.key!r}")
            self._subjects[subject.key] = subject
            for q in subject.questions:
                if q.id in self._questions:
                    raise InvalidInputError(f"Duplicate question id {q.id!r}")
                self._questions[q.id] = q

    def __contains__(self, subject_key: str) -> bool:
        return subject_key in self._subjects

    def __len__(self) -> int:
        return len(self._subjects)

    def __iter__(self) -> Iterator[Subject]:
        return iter(self._subjects.values())

    def get_subject(self, subject_key: str) -> Optional[Subject]:
        return self._subjects.get(subject_key)

    def all_subjects(self) -> list[Subject]:
        return list(self._subjects.values())

    def subject_keys(self) -> list[str]:
        return list(self._subjects)

    def find_subject_by_name(self, name: str) -> Optional[Subject]:
        """Match a display name or key, ignoring case and spaces vs underscores."""
        wanted = name.strip().lower().replace(" ", "_")
        for subject in self._subjects.values():
            if subject.key == wanted or subject.name.lower().replace(" ", "_") == wanted:
                return subject
        return None

    def get_question(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    def questions_for_subject(self, subject_key: str) -> list[Question]:
        subject = self._subjects.get(subject_key)
        return list(subject.questions) if subject else []

    @classmethod
    def from_dict(cls, data: dict) -> "Catalog":
        return cls([parse_subject(s) for s in data.get("subjects") or []])


def load_catalog(file_path: str | Path | None = None) -> Catalog:
    """Load the bundled catalog, or a JSON/YAML catalog file."""
    path = Path(file_path) if file_path else DEFAULT_CATALOG
    catalog = Catalog.from_dict(read_catalog_file(path))
    logger.debug("Loaded %d subjects from %s", len(catalog), path)
    return catalog
