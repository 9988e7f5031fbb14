from __future__ import annotations

import pytest

from pte_eval.engine.tokenizer import tokenize
from pte_eval.models import ErrorCategory, ErrorContext, ErrorReport, EvaluationRequest, Reference, Span, UserResponse


def build_request(
    question_type: str,
    *,
    text: str | None = None,
    reference: dict | None = None,
    payload: object = None,
    **response: object,
) -> EvaluationRequest:
    """Assemble an evaluation request from plain keyword data."""

    return EvaluationRequest(
        question_type=question_type,
        reference=Reference(**(reference or {})),
        response=UserResponse(text=text, **response),
        oracle_payload=payload,
    )


def build_report(
    text: str,
    *,
    category: ErrorCategory = ErrorCategory.GRAMMAR,
    before: str | None = None,
    after: str | None = None,
    approx: int | None = None,
) -> ErrorReport:
    context = ErrorContext(before=before, after=after) if (before or after) else None
    position = Span(start=approx, end=approx + 1) if approx is not None else None
    return ErrorReport(text=text, category=category, context=context, approx_position=position)


def writing_payload(**scores: float) -> dict:
    base = {"content": 24, "grammar": 20, "form": 20, "coherence": 18}
    base.update(scores)
    return {
        "scores": base,
        "feedback": "Clear summary with minor slips.",
        "suggestions": ["Vary sentence openings"],
        "errorAnalysis": {
            "grammarErrors": [
                {"text": "have went", "position": {"start": 2, "end": 4}, "suggestion": "have gone"},
                {"text": "not in the answer", "suggestion": "n/a"},
            ],
            "spellingErrors": [],
        },
    }


@pytest.fixture
def make_request():
    return build_request


@pytest.fixture
def make_report():
    return build_report


@pytest.fixture
def make_tokens():
    return tokenize


@pytest.fixture
def swt_payload():
    return writing_payload
