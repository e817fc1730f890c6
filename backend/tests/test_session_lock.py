import threading

import pytest

from gateprep.errors import SessionRejected
from gateprep.models.question_attempt import QuestionAttempt
from gateprep.models.test_session import TestSession
from gateprep.services.session_lock import LockStatus, with_session_lock
from gateprep.services.sessions import start_session, submit_session


@pytest.fixture
def session_id(db, seeded_ids):
    sid = start_session(db, "learner-1", question_ids=seeded_ids).id
    # release the write transaction the refresh opened
    db.rollback()
    return sid


def _reload(session_factory, session_id):
    fresh = session_factory()
    try:
        row = fresh.query(TestSession).filter(TestSession.id == session_id).one()
        return {"score": row.score, "mode": row.mode, "is_submitted": row.is_submitted}
    finally:
        fresh.close()


def test_missing_session_reports_not_found(session_factory):
    calls = []
    result = with_session_lock(session_factory, "nope", lambda db, row: calls.append(row))
    assert result.status is LockStatus.NOT_FOUND
    assert not result.ok
    assert calls == []


def test_operation_commits_on_success(session_factory, session_id):
    def operation(db, row):
        row.mode = "subject"
        return {"id": row.id}

    result = with_session_lock(session_factory, session_id, operation)
    assert result.ok
    assert result.data == {"id": session_id}
    assert _reload(session_factory, session_id)["mode"] == "subject"


def test_operation_error_rolls_back(session_factory, session_id):
    def operation(db, row):
        row.mode = "broken"
        db.flush()
        raise RuntimeError("disk on fire")

    result = with_session_lock(session_factory, session_id, operation)
    assert result.status is LockStatus.FAILED
    assert result.error == "disk on fire"
    assert _reload(session_factory, session_id)["mode"] == "main"


def test_rejection_is_distinct_from_failure(session_factory, session_id):
    def operation(db, row):
        row.mode = "changed"
        raise SessionRejected(row.id, "not allowed")

    result = with_session_lock(session_factory, session_id, operation)
    assert result.status is LockStatus.REJECTED
    assert result.error == "not allowed"
    assert _reload(session_factory, session_id)["mode"] == "main"


def test_concurrent_submits_score_exactly_once(session_factory, session_id):
    barrier = threading.Barrier(2)
    results = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        result = submit_session(session_factory, session_id,
                                answers={}, remaining_time=None)
        with lock:
            results.append(result)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    statuses = sorted(r.status.value for r in results)
    assert statuses == ["OK", "REJECTED"]

    check = session_factory()
    try:
        rows = check.query(QuestionAttempt).filter(QuestionAttempt.session_id == session_id).count()
    finally:
        check.close()
    assert rows == 3
    assert _reload(session_factory, session_id)["is_submitted"] is True
