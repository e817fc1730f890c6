"""
Question bank API route - batch import.

POST /api/questions/import validates every row, de-duplicates by content
hash and reports how many rows were inserted or skipped.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from gateprep.database import get_db
from gateprep.errors import QuestionImportError
from gateprep.logging_config import get_logger, log_with_context
from gateprep.services.question_bank import import_questions

router = APIRouter()
logger = get_logger("http")


class ImportRequest(BaseModel):
    questions: List[dict] = Field(default_factory=list)
    subject: Optional[str] = Field(None, description="Default subject for rows without one")
    topic: Optional[str] = Field(None, description="Default topic")
    section: Optional[str] = Field(None, description="Default section: GE | EC")
    difficulty: Optional[str] = Field(None, description="Default difficulty")


class ImportSummary(BaseModel):
    inserted: int
    skipped: int
    ids: List[str]


@router.post("/api/questions/import", response_model=ImportSummary)
def import_question_batch(request: ImportRequest, db: Session = Depends(get_db)):
    """Import a batch of questions into the bank."""
    defaults = {
        "subject": request.subject,
        "topic": request.topic,
        "section": request.section,
        "difficulty": request.difficulty,
    }
    try:
        result = import_questions(db, request.questions, defaults)
    except QuestionImportError as e:
        db.rollback()
        log_with_context(logger, "WARNING", "Question import rejected: {}".format(e),
                         extra_data={"row": e.row})
        raise HTTPException(status_code=400, detail=str(e))

    return ImportSummary(**result)
