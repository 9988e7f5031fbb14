from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from pte_eval import oracle_client
from pte_eval.engine import question_types as qt
from pte_eval.errors import OracleUnavailable
from pte_eval.models import EvaluationStage
from pte_eval.oracle_client import OracleClient, build_grading_prompt, grade_with_oracle
from pte_eval.settings import settings


@pytest.fixture(autouse=True)
def _no_fallback(monkeypatch):
    monkeypatch.setattr(settings, "gemini_provider", "ai_studio")
    monkeypatch.setattr(settings, "openrouter_api_key", None)


def _gemini_reply(text: str) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def test_generate_sends_key_and_returns_text():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.url.params.get("key")
        seen["body"] = json.loads(request.content)
        return _gemini_reply('{"scores": {}}')

    async def run():
        client = OracleClient(api_key="test-key", transport=httpx.MockTransport(handler))
        try:
            return await client.generate("grade this")
        finally:
            await client.aclose()

    assert asyncio.run(run()) == '{"scores": {}}'
    assert seen["key"] == "test-key"
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "grade this"


def test_http_error_without_fallback_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    async def run():
        client = OracleClient(api_key="test-key", transport=httpx.MockTransport(handler))
        try:
            await client.generate("x")
        finally:
            await client.aclose()

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(run())


def test_openrouter_fallback_after_gemini_failure(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "or-key")
    hosts = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "openrouter.ai":
            assert request.headers["Authorization"] == "Bearer or-key"
            return httpx.Response(200, json={"choices": [{"message": {"content": "fallback text"}}]})
        return httpx.Response(503)

    async def run():
        client = OracleClient(api_key="test-key", transport=httpx.MockTransport(handler))
        try:
            return await client.generate("x")
        finally:
            await client.aclose()

    assert asyncio.run(run()) == "fallback text"
    assert hosts == ["generativelanguage.googleapis.com", "openrouter.ai"]


def test_client_requires_a_key(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", None)
    with pytest.raises(OracleUnavailable):
        OracleClient()


def test_prompt_lists_components_and_error_arrays(make_request):
    spec = qt.lookup("SUMMARIZE_SPOKEN_TEXT")
    request = make_request(
        "SUMMARIZE_SPOKEN_TEXT",
        text="The lecture covered climate",
        reference={"text": "Lecture transcript", "word_count_min": 50, "word_count_max": 70},
    )
    prompt = build_grading_prompt(spec, request)
    assert "Summarize Spoken Text" in prompt
    assert '"The lecture covered climate"' in prompt
    assert "Required word count: 50-70" in prompt
    assert '"spelling": "number 0-15' in prompt
    assert '"listeningErrors"' in prompt


def test_grade_with_oracle_end_to_end(make_request, monkeypatch):
    monkeypatch.setattr(settings, "oracle_timeout_seconds", 5.0)
    payload = {
        "scores": {"content": 30, "vocabulary": 20, "grammar": 20, "fluency": 10},
        "feedback": "Detailed description.",
        "errorAnalysis": {"grammarErrors": [{"text": "bar are", "position": {"start": 1, "end": 3}}]},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        prompt = json.loads(request.content)["contents"][0]["parts"][0]["text"]
        assert "Describe Image" in prompt
        return _gemini_reply("```json\n" + json.dumps(payload) + "\n```")

    async def run():
        client = OracleClient(api_key="test-key", model="gemini-test", transport=httpx.MockTransport(handler))
        try:
            return await grade_with_oracle(make_request("DESCRIBE_IMAGE", text="The bar are tall"), client=client)
        finally:
            await client.aclose()

    result = asyncio.run(run())
    assert result.stage == EvaluationStage.DONE
    assert result.score == 80
    assert result.resolved_errors[0].span.start == 1
    assert result.metadata.model_version == "gemini-test"


def test_grade_with_oracle_failure_is_contained(make_request):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async def run():
        client = OracleClient(api_key="test-key", transport=httpx.MockTransport(handler))
        try:
            return await oracle_client.grade_with_oracle(make_request("READ_ALOUD", text="hello"), client=client)
        finally:
            await client.aclose()

    result = asyncio.run(run())
    assert result.stage == EvaluationStage.FAILED
    assert result.failure_reason.startswith("oracle call failed")


def test_vertex_provider_sends_key_in_header(monkeypatch):
    monkeypatch.setattr(settings, "gemini_provider", "vertex")
    monkeypatch.setattr(settings, "vertex_region", "europe-west4")
    monkeypatch.setattr(settings, "vertex_project", "pte-proj")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["host"] = request.url.host
        seen["path"] = request.url.path
        seen["header"] = request.headers.get("x-goog-api-key")
        seen["query"] = request.url.params.get("key")
        return _gemini_reply("{}")

    async def run():
        client = OracleClient(api_key="vx-key", model="gemini-test", transport=httpx.MockTransport(handler))
        try:
            return await client.generate("x")
        finally:
            await client.aclose()

    assert asyncio.run(run()) == "{}"
    assert seen["host"] == "europe-west4-aiplatform.googleapis.com"
    assert "/projects/pte-proj/" in seen["path"]
    assert seen["path"].endswith("/models/gemini-test:generateContent")
    assert seen["header"] == "vx-key"
    assert seen["query"] is None


def test_openrouter_only_configuration(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", None)
    monkeypatch.setattr(settings, "openrouter_api_key", "or-key")
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "openrouter.ai"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": "only fallback"}}]})

    async def run():
        client = OracleClient(transport=httpx.MockTransport(handler))
        try:
            return await client.generate("grade me")
        finally:
            await client.aclose()

    assert asyncio.run(run()) == "only fallback"
    assert bodies[0]["model"] == settings.openrouter_model
    assert bodies[0]["messages"] == [{"role": "user", "content": "grade me"}]


def test_malformed_gemini_reply_uses_fallback(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "or-key")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "openrouter.ai":
            return httpx.Response(500)
        return httpx.Response(200, json={"candidates": []})

    async def run():
        client = OracleClient(api_key="test-key", transport=httpx.MockTransport(handler))
        try:
            await client.generate("x")
        finally:
            await client.aclose()

    with pytest.raises(RuntimeError, match="fallback via OpenRouter also failed"):
        asyncio.run(run())
