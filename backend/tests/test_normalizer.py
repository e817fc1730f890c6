import pytest

from gateprep.services.normalizer import (
    AnswerKind, QuestionType, normalize_multi, normalize_numeric, normalize_numeric_key,
    normalize_reference, normalize_single, parse_number, sanitize_type,
)


@pytest.mark.parametrize("raw,expected", [
    ("MCQ", QuestionType.SINGLE_CHOICE),
    ("msq", QuestionType.MULTI_CHOICE),
    (" nat ", QuestionType.NUMERIC),
    ("NUMERIC", QuestionType.NUMERIC),
    ("MULTI_CHOICE", QuestionType.MULTI_CHOICE),
    ("essay", QuestionType.SINGLE_CHOICE),
    (None, QuestionType.SINGLE_CHOICE),
])
def test_sanitize_type(raw, expected):
    assert sanitize_type(raw) is expected


@pytest.mark.parametrize("raw,expected", [
    ("3.14", 3.14),
    (" -2 ", -2.0),
    ("1e-3", 0.001),
    (".5", 0.5),
    (7, 7.0),
    ("0x10", None),
    ("1_000", None),
    ("Infinity", None),
    (float("nan"), None),
    (True, None),
    ("", None),
])
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_single_choice_is_uppercased_and_trimmed():
    answer = normalize_single("  b ")
    assert answer.kind is AnswerKind.SINGLE
    assert answer.text == "B"
    assert normalize_single(["c"]).text == "C"


@pytest.mark.parametrize("raw", [None, "", "   ", [], ()])
def test_single_choice_blank_is_empty(raw):
    assert normalize_single(raw).is_empty


def test_single_choice_longer_sequence_never_matches_a_label():
    assert normalize_single(["A", "B"]).text == "A,B"


def test_multi_choice_from_scalar_and_sequence():
    assert normalize_multi("a, c,,").labels == frozenset({"A", "C"})
    assert normalize_multi(["c", " A", "a"]).labels == frozenset({"A", "C"})
    assert normalize_multi(["", " "]).is_empty
    assert normalize_multi(" , ").is_empty
    assert normalize_multi(None).is_empty


def test_numeric_submitted_forms():
    scalar = normalize_numeric(" 3.20 ")
    assert scalar.kind is AnswerKind.NUMERIC_SCALAR
    assert scalar.number == 3.2
    assert scalar.text == "3.20"

    text = normalize_numeric(" infinity ")
    assert text.kind is AnswerKind.NUMERIC_TEXT
    assert text.text == "infinity"

    assert normalize_numeric(True).kind is AnswerKind.NUMERIC_TEXT
    assert normalize_numeric(["2.5"]).number == 2.5
    assert normalize_numeric("  ").is_empty
    assert normalize_numeric(None).is_empty
    assert normalize_numeric([]).is_empty


def test_numeric_key_range_variants():
    rng = normalize_numeric_key({"min": 1.5, "max": 2.5})
    assert rng.kind is AnswerKind.NUMERIC_RANGE
    assert (rng.low, rng.high) == (1.5, 2.5)

    swapped = normalize_numeric_key({"min": "3", "max": "2"})
    assert (swapped.low, swapped.high) == (2.0, 3.0)

    one_sided = normalize_numeric_key({"min": 4})
    assert (one_sided.low, one_sided.high) == (4.0, 4.0)

    text_range = normalize_numeric_key("0.48 to 0.52")
    assert text_range.kind is AnswerKind.NUMERIC_RANGE
    assert (text_range.low, text_range.high) == (0.48, 0.52)

    from_json = normalize_numeric_key('{"min": 1, "max": 2}')
    assert from_json.kind is AnswerKind.NUMERIC_RANGE


def test_numeric_key_unusable_range_matches_nothing():
    broken = normalize_numeric_key({"min": "x", "max": None})
    assert broken.kind is AnswerKind.NUMERIC_SET
    assert broken.members == ()


def test_numeric_key_set_variants():
    values = normalize_numeric_key({"values": [1, "pi", ""]})
    assert values.kind is AnswerKind.NUMERIC_SET
    assert [m.kind for m in values.members] == [AnswerKind.NUMERIC_SCALAR, AnswerKind.NUMERIC_TEXT]

    single = normalize_numeric_key({"value": 4})
    assert single.kind is AnswerKind.NUMERIC_SET
    assert single.members[0].number == 4.0

    scalar_values = normalize_numeric_key({"values": 9})
    assert scalar_values.members[0].number == 9.0

    assert normalize_numeric_key([1, 2]).kind is AnswerKind.NUMERIC_SET
    assert normalize_numeric_key("[1, 2]").kind is AnswerKind.NUMERIC_SET


def test_numeric_key_scalar_stays_distinct_from_set():
    scalar = normalize_numeric_key("3.14")
    assert scalar.kind is AnswerKind.NUMERIC_SCALAR
    assert scalar.number == 3.14


def test_reference_multi_choice_accepts_json_text():
    ref = normalize_reference(QuestionType.MULTI_CHOICE, '["A", "C"]')
    assert ref.labels == frozenset({"A", "C"})


def test_to_dict_is_json_friendly():
    assert normalize_multi("c,a").to_dict() == {"kind": "MULTI_SET", "labels": ["A", "C"]}
    assert normalize_numeric_key({"min": 1, "max": 2}).to_dict() == {
        "kind": "NUMERIC_RANGE", "min": 1.0, "max": 2.0}


def test_oversized_integers_degrade_to_text():
    huge = 10 ** 400
    assert parse_number(huge) is None
    answer = normalize_numeric(huge)
    assert answer.kind is AnswerKind.NUMERIC_TEXT
    assert answer.text == str(huge)


def test_deeply_nested_json_key_is_kept_as_text():
    nested = "[" * 100000 + "]" * 100000
    msq = normalize_reference(QuestionType.MULTI_CHOICE, nested)
    assert msq.kind is AnswerKind.MULTI_SET
    nat = normalize_numeric_key(nested)
    assert nat.kind is AnswerKind.NUMERIC_TEXT
