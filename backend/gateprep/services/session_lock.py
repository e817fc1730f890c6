"""
Session Lock - serializes mutations of one test session.

with_session_lock() opens its own transaction, locks the session row with
SELECT ... FOR UPDATE, runs the caller's operation on the locked row and
commits. Concurrent calls for the same session queue on the row lock;
calls for different sessions do not interact.

Outcomes are returned, not raised:
- OK:        operation ran and the transaction committed
- NOT_FOUND: no such session; nothing was touched
- REJECTED:  operation raised SessionRejected (e.g. already submitted)
- FAILED:    any other error; transaction rolled back, message preserved

Operations must return plain data (dicts, numbers). ORM objects are expired
on commit and detached when the lock is released.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gateprep.errors import SessionRejected
from gateprep.logging_config import get_logger, log_with_context, timed
from gateprep.models.test_session import TestSession

logger = get_logger("session")


class LockStatus(str, Enum):
    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    REJECTED = "REJECTED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class LockResult:
    status: LockStatus
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is LockStatus.OK


def _rollback(db: Session, session_id: str):
    try:
        db.rollback()
    except SQLAlchemyError as e:
        log_with_context(logger, "ERROR", "Rollback failed: {}".format(e),
                         context={"session_id": session_id})


def with_session_lock(session_factory: sessionmaker, session_id: str,
                      operation: Callable[[Session, TestSession], Any]) -> LockResult:
    """
    Run operation(db, locked_row) inside a transaction holding the row lock.

    Args:
        session_factory: Creates the DB session the lock is scoped to
        session_id: TestSession primary key
        operation: Computes and writes the new state; its return value
            becomes LockResult.data

    Returns:
        LockResult describing the outcome
    """
    context = {"session_id": session_id}
    db = session_factory()
    try:
        with timed() as elapsed:
            row = (
                db.query(TestSession)
                .filter(TestSession.id == session_id)
                .with_for_update()
                .first()
            )

            if row is None:
                _rollback(db, session_id)
                log_with_context(logger, "INFO", "Session not found for locked operation",
                                 context=context)
                return LockResult(LockStatus.NOT_FOUND, error="Test session not found")

            data = operation(db, row)
            db.commit()

        log_with_context(logger, "DEBUG", "Locked operation committed",
                         context=context, extra_data={"duration_ms": elapsed()})
        return LockResult(LockStatus.OK, data=data)

    except SessionRejected as e:
        _rollback(db, session_id)
        log_with_context(logger, "WARNING", "Locked operation rejected: {}".format(e.reason),
                         context=context)
        return LockResult(LockStatus.REJECTED, error=e.reason)

    except Exception as e:
        _rollback(db, session_id)
        log_with_context(logger, "ERROR", "Locked operation failed: {}".format(e),
                         context=context, exc_info=True)
        return LockResult(LockStatus.FAILED, error=str(e) or "Lock/transaction failed")

    finally:
        db.close()
