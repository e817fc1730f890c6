from gateprep.models.question import Question
from gateprep.models.test_session import TestSession
from gateprep.models.question_attempt import QuestionAttempt

__all__ = ["Question", "TestSession", "QuestionAttempt"]
