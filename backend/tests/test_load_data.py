import httpx
import pytest

from load_data import build_batches, post_batches


def test_list_document_is_split_into_batches():
    questions = [{"question": str(i)} for i in range(5)]
    batches = build_batches(questions, batch_size=2)
    assert [len(b["questions"]) for b in batches] == [2, 2, 1]
    assert set(batches[0]) == {"questions"}


def test_object_document_carries_defaults():
    document = {"subject": "Signals", "section": "EC", "topic": "",
                "questions": [{"question": "a"}]}
    batches = build_batches(document)
    assert batches == [{"questions": [{"question": "a"}], "subject": "Signals", "section": "EC"}]


def test_empty_and_invalid_documents():
    assert build_batches({"questions": []}) == []
    with pytest.raises(ValueError):
        build_batches("nope")


def test_post_batches_sums_results():
    def handler(request):
        payload = request.read().decode()
        if "bad" in payload:
            return httpx.Response(400, json={"detail": "Row 1: subject missing"})
        return httpx.Response(200, json={"inserted": 2, "skipped": 1, "ids": []})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    batches = [{"questions": [{"q": "ok"}]}, {"questions": [{"q": "bad"}]},
               {"questions": [{"q": "ok"}]}]
    totals = post_batches(client, "http://test/api/questions/import", batches)
    assert totals == {"inserted": 4, "skipped": 2, "errors": 1}
