# tests/test_catalog.py
import pytest

from concept_refresher.catalog import (
    Catalog,
    load_catalog,
    parse_question,
    question_id_for,
)
from concept_refresher.errors import InvalidInputError

from conftest import SAMPLE_CATALOG, make_question


def test_bundled_catalog_loads():
    catalog = load_catalog()
    assert len(catalog) == 6
    assert "data_structures" in catalog
    for subject in catalog:
        assert len(subject.questions) == 5
        for q in subject.questions:
            assert len(q.options) == 4
            assert 0 <= q.correct < 4
            assert q.subject == subject.key


def test_bundled_question_ids_are_unique():
    catalog = load_catalog()
    ids = [q.id for s in catalog for q in s.questions]
    assert len(ids) == len(set(ids))
    assert catalog.get_question(ids[0]) is not None


def test_find_subject_by_name(catalog):
    assert catalog.find_subject_by_name("Data Structures").key == "data_structures"
    assert catalog.find_subject_by_name("data structures").key == "data_structures"
    assert catalog.find_subject_by_name("algorithms").key == "algorithms"
    assert catalog.find_subject_by_name("chemistry") is None


def test_unknown_subject(catalog):
    assert catalog.get_subject("chemistry") is None
    assert catalog.questions_for_subject("chemistry") == []


def test_question_without_id_gets_stable_id():
    record = make_question(None, "Arrays")
    q1 = parse_question("data_structures", record)
    q2 = parse_question("data_structures", dict(record))
    assert q1.id == q2.id == question_id_for("data_structures", record["question"])


def test_parse_question_defaults():
    q = parse_question("algorithms", {"question": "Q?", "options": ["a", "b", "c", "d"], "correct": 2})
    assert q.difficulty == "intermediate"
    assert q.topic == "General"
    assert q.correct_text == "c"


@pytest.mark.parametrize("override", [
    {"options": ["a", "b", "c"]},
    {"correct": 4},
    {"correct": True},
    {"difficulty": "expert"},
    {"question": ""},
])
def test_parse_question_rejects_bad_records(override):
    record = make_question("x-1", "Arrays")
    record.update(override)
    with pytest.raises(InvalidInputError):
        parse_question("data_structures", record)


def test_duplicate_question_ids_rejected():
    data = {"subjects": [
        {"key": "a", "questions": [make_question("dup", "T")]},
        {"key": "b", "questions": [make_question("dup", "T")]},
    ]}
    with pytest.raises(InvalidInputError):
        Catalog.from_dict(data)


def test_duplicate_subject_keys_rejected():
    data = {"subjects": [{"key": "a"}, {"key": "a"}]}
    with pytest.raises(InvalidInputError):
        Catalog.from_dict(data)


def test_subject_topics_default_to_question_topics(catalog):
    assert catalog.get_subject("data_structures").topics == ("Arrays", "Hash Tables", "Trees")


def test_load_yaml_catalog(tmp_path):
    path = tmp_path / "extra.yaml"
    path.write_text(
        "subjects:\n"
        "  - key: chemistry\n"
        "    name: Chemistry\n"
        "    questions:\n"
        "      - question: What is H2O?\n"
        "        options: [Water, Salt, Sugar, Air]\n"
        "        correct: 0\n"
        "        difficulty: beginner\n"
        "        topic: Molecules\n",
        encoding="utf-8",
    )
    catalog = load_catalog(path)
    subject = catalog.get_subject("chemistry")
    assert subject.questions[0].correct_text == "Water"


def test_load_unsupported_format(tmp_path):
    path = tmp_path / "catalog.txt"
    path.write_text("nope", encoding="utf-8")
    with pytest.raises(InvalidInputError):
        load_catalog(path)


def test_sample_catalog_fixture_matches(catalog):
    assert catalog.subject_keys() == [s["key"] for s in SAMPLE_CATALOG["subjects"]]
