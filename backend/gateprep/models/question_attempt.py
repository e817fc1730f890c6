"""
QuestionAttempt model - per-question outcome of a submitted session.

Written once at submit; the analytics reports aggregate over these rows.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Text, Float, Boolean, DateTime, ForeignKey, String, Integer, Index
from sqlalchemy.orm import relationship
from gateprep.database import Base


class QuestionAttempt(Base):
    """
    SQLAlchemy model for the question_attempts table.

    Primary key is (session_id, position) so that papers whose questions
    carry no id still get one row per item.
    """
    __tablename__ = "question_attempts"

    session_id = Column(String(36), ForeignKey("test_sessions.id"), primary_key=True)
    position = Column(Integer, primary_key=True, doc="Index of the question in the paper")
    user_id = Column(Text, nullable=False)
    question_id = Column(Text, nullable=True)
    subject = Column(Text, nullable=True)
    topic = Column(Text, nullable=True)
    type = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    is_skipped = Column(Boolean, nullable=False, default=False)
    marks_awarded = Column(Float, nullable=False, default=0)
    neg_awarded = Column(Float, nullable=False, default=0)
    answer_given = Column(Text, nullable=True, doc="Raw answer as JSON")
    correct_answer = Column(Text, nullable=True, doc="Answer key as JSON")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    session = relationship("TestSession", back_populates="question_attempts")

    __table_args__ = (
        Index("ix_question_attempts_user_time", "user_id", "created_at"),
        Index("ix_question_attempts_user_subject", "user_id", "subject"),
        Index("ix_question_attempts_user_topic", "user_id", "topic"),
    )

    def __repr__(self):
        return (f"<QuestionAttempt(session={self.session_id}, position={self.position}, "
                f"correct={self.is_correct}, skipped={self.is_skipped})>")
