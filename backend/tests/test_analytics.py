import pytest

from gateprep.services.analytics import (
    build_overview, build_weakness_report, recommendations_from_report,
)
from gateprep.services.sessions import start_session, submit_session


@pytest.fixture
def submitted(db, session_factory, seeded_ids):
    sid = start_session(db, "learner-1", question_ids=seeded_ids).id
    db.rollback()
    answers = {seeded_ids[0]: "A", seeded_ids[1]: ["A", "C"], seeded_ids[2]: "3.14"}
    assert submit_session(session_factory, sid, answers=answers).ok
    return sid


def test_overview(db, submitted):
    overview = build_overview(db, "learner-1", days=7)
    db.rollback()

    assert overview["attempts"] == 1
    assert overview["avg_score"] == pytest.approx(2.67)
    assert overview["best_score"] == pytest.approx(2.67)
    assert [s["subject"] for s in overview["by_subject"]] == ["Networks", "Signals"]
    networks = overview["by_subject"][0]
    assert (networks["total"], networks["correct"], networks["attempted"]) == (2, 1, 2)
    assert networks["score"] == pytest.approx(0.67)


def test_overview_for_unknown_user_is_empty(db, submitted):
    overview = build_overview(db, "nobody")
    db.rollback()
    assert overview["attempts"] == 0
    assert overview["by_subject"] == []


def test_weakness_report_orders_weakest_first(db, submitted):
    report = build_weakness_report(db, "learner-1", min_attempts=1)
    db.rollback()

    assert [s["subject"] for s in report["weak_subjects"]] == ["Networks", "Signals"]
    assert report["weak_subjects"][0]["accuracy"] == 50.0
    weakest_topic = report["weak_topics"][0]
    assert (weakest_topic["subject"], weakest_topic["topic"]) == ("Networks", "Filters")
    assert len(report["weak_topics"]) == 3


def test_weakness_report_threshold(db, submitted):
    report = build_weakness_report(db, "learner-1", min_attempts=10)
    db.rollback()
    assert report["weak_subjects"] == []
    assert report["weak_topics"] == []

    actions = recommendations_from_report(report)["actions"]
    assert [a["type"] for a in actions] == ["strategy"]


def test_skipped_only_groups_sort_last(db, session_factory, seeded_ids):
    sid = start_session(db, "learner-2", question_ids=seeded_ids).id
    db.rollback()
    submit_session(session_factory, sid, answers={seeded_ids[1]: ["A"]})

    report = build_weakness_report(db, "learner-2", min_attempts=1)
    db.rollback()
    subjects = report["weak_subjects"]
    assert subjects[-1]["subject"] == "Networks"
    assert subjects[-1]["attempted"] == 0


def _row(subject, accuracy, total=20, topic=None):
    row = {"subject": subject, "accuracy": accuracy, "total": total, "attempted": total}
    if topic:
        row["topic"] = topic
    return row


def test_recommendations_cap_and_order():
    report = {
        "weak_subjects": [_row("A", 70), _row("B", 20), _row("C", 40), _row("D", 10)],
        "weak_topics": [_row("A", float(i), topic="t{}".format(i)) for i in range(8, 0, -1)],
    }
    result = recommendations_from_report(report)

    assert [s["subject"] for s in result["focus_subjects"]] == ["D", "B", "C"]
    assert [t["topic"] for t in result["focus_topics"]] == ["t1", "t2", "t3", "t4", "t5", "t6"]
    types = [a["type"] for a in result["actions"]]
    assert types == ["subject-focus"] * 3 + ["topic-drill"] * 6 + ["strategy"]
    assert "D" in result["actions"][0]["message"]
