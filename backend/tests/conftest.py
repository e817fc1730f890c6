import os
import tempfile

# Point the module-level engine at a throwaway file before gateprep is imported.
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="gateprep-"), "default.db"),
)

import pytest

from gateprep.database import build_engine, build_session_factory, create_tables, get_db, get_session_factory
from gateprep.services.question_bank import import_questions


SAMPLE_QUESTIONS = [
    {
        "subject": "Networks",
        "topic": "Filters",
        "type": "MCQ",
        "marks": 1,
        "neg_marks": 0.33,
        "question": "Which filter passes low frequencies?",
        "options": {"A": "High-pass", "B": "Low-pass", "C": "Band-stop", "D": "All-pass"},
        "answer": "B",
    },
    {
        "subject": "Signals",
        "topic": "Transforms",
        "type": "MSQ",
        "marks": 2,
        "neg_marks": 0,
        "question": "Which transforms are linear?",
        "options": {"A": "Fourier", "B": "Squaring", "C": "Laplace", "D": "Modulus"},
        "answer": ["A", "C"],
    },
    {
        "subject": "Networks",
        "topic": "Circuits",
        "type": "NAT",
        "marks": 1,
        "neg_marks": 0,
        "question": "Value of pi to two decimals?",
        "answer": 3.14,
    },
]


def paper(*overrides):
    """The three sample questions as evaluator input, ids q1..q3."""
    questions = []
    for i, base in enumerate(SAMPLE_QUESTIONS):
        q = dict(base, id="q{}".format(i + 1))
        if i < len(overrides) and overrides[i]:
            q.update(overrides[i])
        questions.append(q)
    return questions


@pytest.fixture
def engine(tmp_path):
    eng = build_engine("sqlite:///{}".format(tmp_path / "test.db"))
    create_tables(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_ids(db):
    """Import the sample questions and return their ids in order."""
    return import_questions(db, SAMPLE_QUESTIONS)["ids"]


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient
    from gateprep.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
