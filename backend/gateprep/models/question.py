"""
Question model - one entry of the question bank.

Options and answer keys are stored as JSON text so that every question type
fits one table: MCQ keys are a label, MSQ keys a label list, NAT keys a
number, a {"min", "max"} range or a {"values": [...]} set.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Float, DateTime, String, Index
from gateprep.database import Base
from gateprep.models.json_text import load_json


class Question(Base):
    """
    SQLAlchemy model for the questions table.

    question_hash is a content hash used to skip duplicate imports.
    """
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique question identifier")
    question_hash = Column(String(64), nullable=False, unique=True,
                           doc="SHA-256 of the normalized question content")
    section = Column(Text, nullable=False, default="EC",
                     doc="Paper section: GE (general aptitude) or EC")
    difficulty = Column(Text, nullable=False, default="medium",
                        doc="easy | medium | hard")
    subject = Column(Text, nullable=False, doc="Subject name")
    topic = Column(Text, nullable=False, default="Mixed", doc="Topic within the subject")
    type = Column(Text, nullable=False, default="MCQ", doc="MCQ | MSQ | NAT")
    marks = Column(Float, nullable=False, default=1, doc="Marks for a correct answer")
    neg_marks = Column(Float, nullable=False, default=0,
                       doc="Marks deducted for a wrong MCQ answer")
    question = Column(Text, nullable=False, doc="Question text")
    options = Column(Text, nullable=True,
                     doc="Options as JSON: {label: text}; NULL for NAT")
    answer = Column(Text, nullable=False, doc="Answer key as JSON")
    solution = Column(Text, nullable=True, doc="Worked solution")
    source = Column(Text, nullable=False, default="AI", doc="Where the question came from")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    __table_args__ = (
        Index("ix_questions_subject", "subject"),
        Index("ix_questions_section_difficulty", "section", "difficulty"),
    )

    @property
    def options_dict(self):
        return load_json(self.options, None)

    @property
    def answer_value(self):
        return load_json(self.answer, "")

    def to_snapshot(self) -> dict:
        """Frozen copy stored on a test session (includes the answer key)."""
        return {
            "id": self.id,
            "section": self.section,
            "difficulty": self.difficulty,
            "subject": self.subject,
            "topic": self.topic,
            "type": self.type,
            "marks": self.marks,
            "neg_marks": self.neg_marks,
            "question": self.question,
            "options": self.options_dict,
            "answer": self.answer_value,
            "solution": self.solution,
        }

    def __repr__(self):
        return f"<Question(id={self.id}, subject='{self.subject}', type={self.type})>"
