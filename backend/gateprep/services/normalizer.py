"""
Answer Normalizer - canonical, comparable forms of raw answers.

Learner input arrives untrusted: strings with stray whitespace, lists where
a scalar was expected, numbers typed as text, or nothing at all. Reference
answers from the bank are just as loose (NAT keys may be a number, a
{"min", "max"} range, a {"values": [...]} set or JSON text of those).

Every function here is pure and total: malformed input degrades to an EMPTY
or text form, it never raises.
"""

import json
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Optional, Tuple


class QuestionType(str, Enum):
    """Question types, valued by their GATE abbreviations."""
    SINGLE_CHOICE = "MCQ"
    MULTI_CHOICE = "MSQ"
    NUMERIC = "NAT"


_TYPE_ALIASES = {
    "MCQ": QuestionType.SINGLE_CHOICE,
    "SINGLE_CHOICE": QuestionType.SINGLE_CHOICE,
    "MSQ": QuestionType.MULTI_CHOICE,
    "MULTI_CHOICE": QuestionType.MULTI_CHOICE,
    "NAT": QuestionType.NUMERIC,
    "NUMERIC": QuestionType.NUMERIC,
}


def sanitize_type(value: Any) -> QuestionType:
    """Map a raw type label to QuestionType; unknown labels become MCQ."""
    if isinstance(value, QuestionType):
        return value
    label = str(value if value is not None else "").strip().upper()
    return _TYPE_ALIASES.get(label, QuestionType.SINGLE_CHOICE)


class AnswerKind(str, Enum):
    EMPTY = "EMPTY"
    SINGLE = "SINGLE"
    MULTI_SET = "MULTI_SET"
    NUMERIC_SCALAR = "NUMERIC_SCALAR"
    NUMERIC_TEXT = "NUMERIC_TEXT"
    NUMERIC_RANGE = "NUMERIC_RANGE"
    NUMERIC_SET = "NUMERIC_SET"


@dataclass(frozen=True)
class CanonicalAnswer:
    """
    Tagged union over AnswerKind. Only the fields of the active kind are set:

    - SINGLE: text
    - MULTI_SET: labels
    - NUMERIC_SCALAR: number, text (the trimmed source text)
    - NUMERIC_TEXT: text
    - NUMERIC_RANGE: low, high
    - NUMERIC_SET: members (NUMERIC_SCALAR / NUMERIC_TEXT answers)
    """
    kind: AnswerKind
    text: Optional[str] = None
    labels: FrozenSet[str] = frozenset()
    number: Optional[float] = None
    low: Optional[float] = None
    high: Optional[float] = None
    members: Tuple["CanonicalAnswer", ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.kind is AnswerKind.EMPTY

    def to_dict(self) -> dict:
        """JSON-friendly view used in evaluation payloads."""
        if self.kind is AnswerKind.EMPTY:
            return {"kind": self.kind.value}
        if self.kind is AnswerKind.MULTI_SET:
            return {"kind": self.kind.value, "labels": sorted(self.labels)}
        if self.kind is AnswerKind.NUMERIC_SCALAR:
            return {"kind": self.kind.value, "number": self.number}
        if self.kind is AnswerKind.NUMERIC_RANGE:
            return {"kind": self.kind.value, "min": self.low, "max": self.high}
        if self.kind is AnswerKind.NUMERIC_SET:
            return {"kind": self.kind.value, "values": [m.to_dict() for m in self.members]}
        return {"kind": self.kind.value, "text": self.text}


EMPTY = CanonicalAnswer(AnswerKind.EMPTY)

_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_TEXT_RANGE_RE = re.compile(
    r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)\s+to\s+"
    r"([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)\s*$",
    re.IGNORECASE,
)
_SEQUENCE_TYPES = (list, tuple, set, frozenset)


def _text(value: Any) -> str:
    if value is None:
        return ""
    try:
        return str(value).strip()
    except ValueError:
        # ints past the interpreter's digit limit cannot be rendered
        return ""


def _unwrap_single(value: Any) -> Any:
    """A one-element sequence stands for its element; others pass through."""
    if isinstance(value, _SEQUENCE_TYPES) and len(value) == 1:
        return next(iter(value))
    return value


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a finite decimal number, or return None.

    Accepts ints/floats and decimal text ("3.14", "-2", "1e-3", ".5").
    Booleans, NaN, infinities and anything else yield None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    text = _text(value)
    if not text or not _DECIMAL_RE.match(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def normalize_single(raw: Any) -> CanonicalAnswer:
    """Uppercase-trimmed label; blank input is EMPTY."""
    raw = _unwrap_single(raw)
    if isinstance(raw, _SEQUENCE_TYPES):
        if not raw:
            return EMPTY
        raw = ",".join(_text(x) for x in raw)
    label = _text(raw).upper()
    if not label:
        return EMPTY
    return CanonicalAnswer(AnswerKind.SINGLE, text=label)


def normalize_multi(raw: Any) -> CanonicalAnswer:
    """Order-free label set; scalars are split on commas. No labels is EMPTY."""
    if isinstance(raw, _SEQUENCE_TYPES):
        tokens = (_text(x).upper() for x in raw)
    else:
        tokens = (t.strip().upper() for t in _text(raw).split(","))
    labels = frozenset(t for t in tokens if t)
    if not labels:
        return EMPTY
    return CanonicalAnswer(AnswerKind.MULTI_SET, labels=labels)


def normalize_numeric(raw: Any) -> CanonicalAnswer:
    """Submitted NAT answer: EMPTY, NUMERIC_SCALAR or NUMERIC_TEXT."""
    raw = _unwrap_single(raw)
    if isinstance(raw, _SEQUENCE_TYPES):
        if not raw:
            return EMPTY
        raw = ",".join(_text(x) for x in raw)
    if isinstance(raw, bool):
        raw = str(raw)
    text = _text(raw)
    if not text:
        return EMPTY
    number = parse_number(raw)
    if number is not None:
        return CanonicalAnswer(AnswerKind.NUMERIC_SCALAR, number=number, text=text)
    return CanonicalAnswer(AnswerKind.NUMERIC_TEXT, text=text)


def _numeric_set(values) -> CanonicalAnswer:
    members = []
    for value in values:
        member = normalize_numeric(value)
        if not member.is_empty:
            members.append(member)
    return CanonicalAnswer(AnswerKind.NUMERIC_SET, members=tuple(members))


def _numeric_range(low_raw: Any, high_raw: Any) -> CanonicalAnswer:
    low = parse_number(low_raw)
    high = parse_number(high_raw)
    if low is None and high is None:
        # Unusable bounds: a set with no members never matches.
        return CanonicalAnswer(AnswerKind.NUMERIC_SET)
    if low is None:
        low = high
    if high is None:
        high = low
    if low > high:
        low, high = high, low
    return CanonicalAnswer(AnswerKind.NUMERIC_RANGE, low=low, high=high)


def _maybe_json(raw: str) -> Any:
    """Decode JSON object/array text; anything else is returned unchanged."""
    text = raw.strip()
    if not text or text[0] not in "[{":
        return raw
    try:
        return json.loads(text)
    except (ValueError, TypeError, RecursionError):
        return raw


def normalize_numeric_key(raw: Any) -> CanonicalAnswer:
    """
    Reference NAT answer.

    Recognized shapes, in order:
        {"min": a, "max": b}           -> NUMERIC_RANGE
        {"values": [...]} / {"value": x} -> NUMERIC_SET
        [a, b, ...]                     -> NUMERIC_SET
        "a to b"                        -> NUMERIC_RANGE
        JSON text of the shapes above  -> decoded first
        anything else                  -> as a submitted answer
    """
    if isinstance(raw, str):
        raw = _maybe_json(raw)
        if isinstance(raw, str):
            match = _TEXT_RANGE_RE.match(raw)
            if match:
                return _numeric_range(match.group(1), match.group(2))

    if isinstance(raw, dict):
        if "min" in raw or "max" in raw:
            return _numeric_range(raw.get("min"), raw.get("max"))
        if "values" in raw:
            values = raw["values"]
            return _numeric_set(values if isinstance(values, _SEQUENCE_TYPES) else [values])
        if "value" in raw:
            return _numeric_set([raw["value"]])
        return EMPTY

    if isinstance(raw, _SEQUENCE_TYPES):
        return _numeric_set(raw)

    return normalize_numeric(raw)


def normalize_submitted(question_type: QuestionType, raw: Any) -> CanonicalAnswer:
    if question_type is QuestionType.MULTI_CHOICE:
        return normalize_multi(raw)
    if question_type is QuestionType.NUMERIC:
        return normalize_numeric(raw)
    return normalize_single(raw)


def normalize_reference(question_type: QuestionType, raw: Any) -> CanonicalAnswer:
    if question_type is QuestionType.MULTI_CHOICE:
        if isinstance(raw, str):
            raw = _maybe_json(raw)
        return normalize_multi(raw)
    if question_type is QuestionType.NUMERIC:
        return normalize_numeric_key(raw)
    return normalize_single(raw)
