"""
TestSession model - one timed sitting of a practice paper.

Lifecycle: ACTIVE (is_submitted = False) -> SUBMITTED (terminal).
Autosave only touches ACTIVE rows; submit flips the row to SUBMITTED
exactly once. Both run under the row lock in services/session_lock.py.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Float, Boolean, DateTime, String, Index
from sqlalchemy.orm import relationship
from gateprep.database import Base
from gateprep.models.json_text import load_json


class TestSession(Base):
    """
    SQLAlchemy model for the test_sessions table.

    questions holds a snapshot of the paper taken at start, so later edits to
    the bank never change how a sitting is scored.
    """
    __tablename__ = "test_sessions"
    __test__ = False  # keep pytest from collecting this class

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique session identifier")
    user_id = Column(Text, nullable=False, doc="Learner identifier")
    question_ids = Column(Text, nullable=False, default="[]",
                          doc="Ordered question ids as JSON list")
    questions = Column(Text, nullable=False, default="[]",
                       doc="Question snapshot as JSON list")
    answers = Column(Text, nullable=False, default="{}",
                     doc="Answers as JSON: {question_id: raw answer}")
    remaining_time = Column(Integer, nullable=True,
                            doc="Remaining seconds at the last timer snapshot")
    duration_sec = Column(Integer, nullable=False, default=3600,
                          doc="Total time allowed in seconds")
    timer_started_at = Column(DateTime, nullable=True,
                              doc="When the timer last started or resumed")
    timer_is_paused = Column(Boolean, nullable=False, default=False)
    is_submitted = Column(Boolean, nullable=False, default=False)
    score = Column(Float, nullable=True)
    accuracy = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    total_questions = Column(Integer, nullable=False, default=0)
    mode = Column(Text, nullable=False, default="main", doc="main | subject | custom")
    subject = Column(Text, nullable=True)
    evaluation = Column(Text, nullable=True,
                        doc="Item verdicts and score breakdown as JSON, set on submit")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))
    submitted_at = Column(DateTime, nullable=True)

    question_attempts = relationship("QuestionAttempt", back_populates="session")

    __table_args__ = (
        Index("ix_test_sessions_user_submitted", "user_id", "is_submitted"),
        Index("ix_test_sessions_created_at", "created_at"),
    )

    @property
    def answers_dict(self):
        loaded = load_json(self.answers, {})
        return loaded if isinstance(loaded, dict) else {}

    @property
    def questions_list(self):
        loaded = load_json(self.questions, [])
        return loaded if isinstance(loaded, list) else []

    @property
    def question_ids_list(self):
        loaded = load_json(self.question_ids, [])
        return loaded if isinstance(loaded, list) else []

    @property
    def evaluation_dict(self):
        loaded = load_json(self.evaluation, None)
        return loaded if isinstance(loaded, dict) else None

    @property
    def status(self) -> str:
        return "SUBMITTED" if self.is_submitted else "ACTIVE"

    def __repr__(self):
        return f"<TestSession(id={self.id}, user={self.user_id}, status='{self.status}')>"
