"""
Exception types raised by the service layer.

Malformed learner answers never raise; they are scored as skipped or wrong.
These exceptions cover session state and question-bank input problems only.
"""


class GatePrepError(Exception):
    """Base class for all service-level errors."""


class SessionRejected(GatePrepError):
    """The session exists but its state does not allow the requested change."""

    def __init__(self, session_id, reason: str):
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"Session {session_id}: {reason}")


class ActiveSessionExists(GatePrepError):
    """A user tried to start a session while another one is still active."""

    def __init__(self, user_id: str, active_session_id):
        self.user_id = user_id
        self.active_session_id = active_session_id
        super().__init__(f"User {user_id} already has active session {active_session_id}")


class QuestionImportError(GatePrepError):
    """A question bank row failed validation; row is 1-based."""

    def __init__(self, row: int, message: str):
        self.row = row
        super().__init__(f"Row {row}: {message}")


class NoQuestionsAvailable(GatePrepError):
    """Question selection for a new session came back empty."""
