"""
Scoring Service - turns evaluated items into a score summary.

Implements the scoring formula:
1. score = Σ marks_awarded - Σ negative_awarded
2. max_score = Σ marks over every question in the paper
3. accuracy = round(correct / attempted * 100, 2)  (0 if nothing attempted)
4. Same counters grouped by subject ("Unknown" if absent) and by type

Grouped lists come back sorted: subjects by net score (best first, then
name), types by name.
"""

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional

from gateprep.logging_config import get_logger, log_with_context, timed
from gateprep.services.evaluator import (
    AttemptEvaluation, EvaluationItem, QuestionRecord, evaluate_attempt,
)

logger = get_logger("scoring")

UNKNOWN_SUBJECT = "Unknown"


def accuracy_percent(correct: int, attempted: int) -> float:
    """Percentage of attempted items answered correctly, 2 dp; 0 when nothing attempted."""
    if attempted <= 0:
        return 0.0
    return round(correct / attempted * 100, 2)


@dataclass
class GroupSummary:
    """Counters for one subject or one question type."""
    key: str
    total: int = 0
    correct: int = 0
    wrong: int = 0
    skipped: int = 0
    marks_awarded: float = 0.0
    negative_awarded: float = 0.0

    @property
    def attempted(self) -> int:
        return self.total - self.skipped

    @property
    def net_score(self) -> float:
        return self.marks_awarded - self.negative_awarded

    @property
    def accuracy(self) -> float:
        return accuracy_percent(self.correct, self.attempted)

    def add(self, item: EvaluationItem):
        self.total += 1
        if item.is_skipped:
            self.skipped += 1
        elif item.is_correct:
            self.correct += 1
        else:
            self.wrong += 1
        self.marks_awarded += item.marks_awarded
        self.negative_awarded += item.negative_awarded

    def to_dict(self, key_name: str = "key") -> dict:
        return {
            key_name: self.key,
            "total": self.total,
            "correct": self.correct,
            "wrong": self.wrong,
            "skipped": self.skipped,
            "attempted": self.attempted,
            "marks_awarded": self.marks_awarded,
            "negative_awarded": self.negative_awarded,
            "net_score": self.net_score,
            "accuracy": self.accuracy
        }


@dataclass
class ScoreTotals:
    questions: int = 0
    attempted: int = 0
    correct: int = 0
    wrong: int = 0
    skipped: int = 0
    marks_awarded: float = 0.0
    negative_awarded: float = 0.0
    score: float = 0.0
    max_score: float = 0.0
    accuracy: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ScoreSummary:
    score: float
    accuracy: float
    max_score: float
    totals: ScoreTotals
    by_subject: List[GroupSummary] = field(default_factory=list)
    by_type: List[GroupSummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "accuracy": self.accuracy,
            "max_score": self.max_score,
            "breakdown": {
                "totals": self.totals.to_dict(),
                "by_subject": [g.to_dict("subject") for g in self.by_subject],
                "by_type": [g.to_dict("type") for g in self.by_type]
            }
        }


def max_score_from_questions(questions: Any) -> float:
    """Sum of marks over the paper, independent of what was answered."""
    if not isinstance(questions, (list, tuple)):
        return 0.0
    return sum(QuestionRecord.from_source(q).marks for q in questions)


def compute_score_summary(questions: Any, evaluation: AttemptEvaluation,
                          context: Optional[dict] = None) -> ScoreSummary:
    """
    Reduce evaluated items into overall and grouped totals.

    Args:
        questions: The paper the evaluation was produced from (for max_score)
        evaluation: Output of evaluate_attempt()
        context: Extra log context (session_id, user_id)

    Returns:
        ScoreSummary; calling again with the same inputs gives the same result
    """
    with timed() as elapsed:
        overall = GroupSummary(key="all")
        by_subject: Dict[str, GroupSummary] = {}
        by_type: Dict[str, GroupSummary] = {}

        for item in evaluation.items:
            subject = str(item.subject) if item.subject else UNKNOWN_SUBJECT
            type_key = item.type.value

            overall.add(item)
            by_subject.setdefault(subject, GroupSummary(key=subject)).add(item)
            by_type.setdefault(type_key, GroupSummary(key=type_key)).add(item)

        max_score = max_score_from_questions(questions)
        accuracy = overall.accuracy

        totals = ScoreTotals(
            questions=overall.total,
            attempted=overall.attempted,
            correct=overall.correct,
            wrong=overall.wrong,
            skipped=overall.skipped,
            marks_awarded=overall.marks_awarded,
            negative_awarded=overall.negative_awarded,
            score=overall.net_score,
            max_score=max_score,
            accuracy=accuracy
        )

        subjects = sorted(by_subject.values(), key=lambda g: (-g.net_score, g.key))
        types = sorted(by_type.values(), key=lambda g: g.key)

    log_with_context(logger, "INFO",
        "Score computed: {} / {} (correct={}, wrong={}, skipped={}, accuracy={:.2f}%)".format(
            totals.score, max_score, totals.correct, totals.wrong, totals.skipped, accuracy),
        context=context,
        extra_data={
            "duration_ms": elapsed(),
            "score": float(totals.score),
            "accuracy": accuracy,
            "subjects": len(subjects)
        })

    return ScoreSummary(
        score=totals.score,
        accuracy=accuracy,
        max_score=max_score,
        totals=totals,
        by_subject=subjects,
        by_type=types
    )


def score_attempt(questions: Any, answers: Any, tolerance=None,
                  context: Optional[dict] = None):
    """Evaluate then aggregate in one call. Returns (evaluation, summary)."""
    evaluation = evaluate_attempt(questions, answers, tolerance=tolerance, context=context)
    return evaluation, compute_score_summary(questions, evaluation, context=context)
