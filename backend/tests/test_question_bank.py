import pytest

from conftest import SAMPLE_QUESTIONS
from gateprep.errors import QuestionImportError
from gateprep.models.question import Question
from gateprep.models.json_text import load_json
from gateprep.services.question_bank import (
    build_row, compute_question_hash, import_questions, normalize_difficulty,
    normalize_section, normalize_text, select_questions,
)


def test_normalizers():
    assert normalize_text("  Low   PASS\nfilter ") == "low pass filter"
    assert normalize_text(None) == ""
    assert normalize_section("ge") == "GE"
    assert normalize_section("CS") == "EC"
    assert normalize_difficulty(" HARD ") == "hard"
    assert normalize_difficulty("brutal") == "medium"


def test_hash_ignores_case_whitespace_and_marks():
    row = build_row(SAMPLE_QUESTIONS[0], 1)
    variant = dict(SAMPLE_QUESTIONS[0], question="which  FILTER passes low frequencies?",
                   marks=2, solution="explained")
    assert build_row(variant, 1)["question_hash"] == row["question_hash"]

    changed = dict(SAMPLE_QUESTIONS[0], answer="C")
    assert compute_question_hash(build_row(changed, 1)) != row["question_hash"]


def test_build_row_defaults():
    row = build_row({"question": "2+2?", "type": "nat", "answer": 4, "neg_marks": -0.5},
                    3, defaults={"subject": "Maths", "section": "ge"})
    assert row["subject"] == "Maths"
    assert row["section"] == "GE"
    assert row["type"] == "NAT"
    assert row["marks"] == 1.0
    assert row["neg_marks"] == 0.5
    assert row["topic"] == "Mixed"
    assert row["options"] is None


@pytest.mark.parametrize("raw,message", [
    ({"question": "?", "answer": "A", "options": {"A": "x"}}, "subject missing"),
    ({"subject": "S", "answer": "A", "options": {"A": "x"}}, "question missing"),
    ({"subject": "S", "question": "?", "type": "MSQ", "answer": ["A"]}, "options object required"),
    ({"subject": "S", "question": "?", "type": "NAT", "answer": "  "}, "answer missing"),
    ("not a dict", "must be an object"),
])
def test_build_row_rejects_bad_rows(raw, message):
    with pytest.raises(QuestionImportError) as exc:
        build_row(raw, 7)
    assert exc.value.row == 7
    assert message in str(exc.value)


def test_import_skips_duplicates(db):
    first = import_questions(db, SAMPLE_QUESTIONS)
    assert first["inserted"] == 3
    assert first["skipped"] == 0

    again = import_questions(db, SAMPLE_QUESTIONS + [dict(SAMPLE_QUESTIONS[0])])
    assert again["inserted"] == 0
    assert again["skipped"] == 4
    assert db.query(Question).count() == 3
    db.rollback()


def test_import_is_all_or_nothing(db):
    bad = SAMPLE_QUESTIONS + [{"subject": "S", "question": "?"}]
    with pytest.raises(QuestionImportError) as exc:
        import_questions(db, bad)
    assert exc.value.row == 4
    assert db.query(Question).count() == 0
    db.rollback()


def test_import_rejects_empty_and_oversized_batches(db):
    with pytest.raises(QuestionImportError):
        import_questions(db, [])
    with pytest.raises(QuestionImportError):
        import_questions(db, [SAMPLE_QUESTIONS[0]] * 201)


def test_select_by_ids_keeps_order(db, seeded_ids):
    order = [seeded_ids[2], "missing", seeded_ids[0]]
    picked = select_questions(db, question_ids=order)
    assert [q.id for q in picked] == [seeded_ids[2], seeded_ids[0]]
    db.rollback()


def test_select_random_with_filters(db, seeded_ids):
    assert len(select_questions(db, count=2)) == 2
    assert {q.subject for q in select_questions(db, subjects=["Signals"])} == {"Signals"}
    assert select_questions(db, section="GE") == []
    assert len(select_questions(db, difficulty="medium", count=500)) == 3
    db.rollback()


def test_snapshot_round_trips_answer_key(db, seeded_ids):
    picked = select_questions(db, question_ids=seeded_ids)
    snapshots = [q.to_snapshot() for q in picked]
    db.rollback()
    assert snapshots[1]["answer"] == ["A", "C"]
    assert snapshots[1]["options"]["C"] == "Laplace"
    assert snapshots[2]["options"] is None


def test_stored_json_decoding_falls_back_to_default():
    assert load_json('{"A": "x"}', None) == {"A": "x"}
    assert load_json(None, []) == []
    assert load_json(["already"], None) == ["already"]
    assert load_json("not json", "") == ""
    assert load_json("[" * 100000 + "]" * 100000, {}) == {}
