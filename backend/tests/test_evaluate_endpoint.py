from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from pte_eval.main import app
from pte_eval.settings import settings


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", None)
    monkeypatch.setattr(settings, "openrouter_api_key", None)
    return TestClient(app)


def test_info_reports_oracle_state(client):
    resp = client.get("/info")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "oracle_configured": False}


def test_reorder_request(client):
    resp = client.post(
        "/evaluate",
        json={
            "question_type": "RE_ORDER_PARAGRAPHS",
            "reference": {"correct_order": ["A", "B", "C", "D"]},
            "response": {"ordered_items": ["B", "A", "C", "D"]},
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["score"] == 33
    assert body["stage"] == "done"
    assert body["detail"] == {"kind": "order", "correct_pairs": 1, "max_pairs": 3}


def test_dictation_detail_is_serialized(client):
    resp = client.post(
        "/evaluate",
        json={
            "question_type": "WRITE_FROM_DICTATION",
            "reference": {"text": "the quick fox"},
            "response": {"text": "the quick fox"},
            "time_taken_seconds": 21.5,
        },
    )
    body = resp.json()
    assert body["is_correct"] is True
    assert body["detail"]["is_correct"] is True
    assert body["time_taken_seconds"] == 21.5
    assert body["metadata"]["evaluation_method"] == "rule-based"


def test_supplied_oracle_payload_is_used(client, swt_payload):
    resp = client.post(
        "/evaluate",
        json={
            "question_type": "SUMMARIZE_WRITTEN_TEXT",
            "response": {"text": "I have went to the market"},
            "oracle_payload": swt_payload(),
        },
    )
    body = resp.json()
    assert body["score"] == 82
    assert body["resolved_errors"][0]["span"] == {"start": 1, "end": 3}
    assert body["dropped_errors"] == 1


def test_oracle_type_without_oracle_returns_failed_record(client):
    resp = client.post("/evaluate", json={"question_type": "WRITE_ESSAY", "response": {"text": "An essay"}})
    assert resp.status_code == 200
    body = resp.json()
    assert body["stage"] == "failed"
    assert body["score"] == 0
    assert body["suggestions"] == ["Please try again later"]


def test_unsupported_type_is_a_client_error(client):
    resp = client.post("/evaluate", json={"question_type": "SING_A_SONG"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Unsupported question type: SING_A_SONG"


def test_types_listing(client):
    resp = client.get("/evaluate/types")
    assert resp.status_code == 200
    types = {row["question_type"]: row for row in resp.json()}
    assert types["WRITE_FROM_DICTATION"]["pass_threshold"] == 60
    assert types["READ_ALOUD"]["mode"] == "oracle"
    assert [c["name"] for c in types["READ_ALOUD"]["components"]] == ["pronunciation", "fluency", "content", "intonation"]


@pytest.mark.parametrize("payload", [[1, 2], 42, True])
def test_non_object_payload_yields_failed_record(client, payload):
    resp = client.post(
        "/evaluate",
        json={"question_type": "WRITE_ESSAY", "response": {"text": "An essay"}, "oracle_payload": payload},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["stage"] == "failed"
    assert body["score"] == 0
    assert "must be an object" in body["failure_reason"]
