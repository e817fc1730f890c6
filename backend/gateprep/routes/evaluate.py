"""
Evaluation API route - stateless scoring of a question list.

POST /api/evaluate takes questions (with answer keys) and raw answers and
returns per-item verdicts, totals and the score summary. Nothing is stored.
"""

from typing import Any, List, Optional
from fastapi import APIRouter
from pydantic import BaseModel, Field

from gateprep.logging_config import get_logger, log_with_context, timed
from gateprep.services.evaluator import Tolerance
from gateprep.services.scoring import score_attempt

router = APIRouter()
logger = get_logger("http")


class EvaluateRequest(BaseModel):
    """Questions plus answers keyed by question id (or index), or a positional list."""
    questions: List[dict] = Field(default_factory=list)
    answers: Any = Field(default_factory=dict)
    abs_tol: Optional[float] = Field(None, ge=0, description="NAT absolute tolerance")
    rel_tol: Optional[float] = Field(None, ge=0, description="NAT relative tolerance")
    case_sensitive: Optional[bool] = Field(None, description="Case-sensitive NAT text answers")


@router.post("/api/evaluate")
def evaluate(request: EvaluateRequest):
    """Evaluate answers against keys and aggregate the score."""
    tolerance = Tolerance.from_values(request.abs_tol, request.rel_tol, request.case_sensitive)

    with timed() as elapsed:
        evaluation, summary = score_attempt(request.questions, request.answers,
                                            tolerance=tolerance)

    log_with_context(logger, "INFO",
        "Evaluated {} questions: score {}".format(len(request.questions), summary.score),
        extra_data={"duration_ms": elapsed()})

    return {
        **evaluation.to_dict(),
        "summary": summary.to_dict()
    }
