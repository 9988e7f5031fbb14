"""
Evaluation Dispatcher
=====================

Turns one ``EvaluationRequest`` into one ``NormalizedEvaluation``.

Every evaluation walks a strictly linear stage machine::

	idle -> tokenizing -> resolving -> aggregating -> done

Oracle-graded types pass through every stage: the response is tokenized
once, every oracle error report is pinned to a token span, and the oracle's
component scores are aggregated. Algorithmic types (dictation, re-order,
option sets, blanks) skip the resolving stage and run their own scorer.

Any failure after the question type has been recognised ends the run in the
terminal ``failed`` stage with a zero-score record, so callers always get a
well-formed result. An unknown question type is the one error that is raised.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from ..errors import OraclePayloadError
from ..models import (
	EvaluationMetadata,
	EvaluationRequest,
	EvaluationStage,
	NormalizedEvaluation,
	Outcome,
	ResolvedError,
	RubricComponent,
	Token,
)
from . import feedback as messages
from . import question_types as qt
from .blanks import score_blanks
from .dictation import match_dictation
from .options import partial_credit, score_options
from .oracle_payloads import parse_oracle_payload, to_components, to_error_reports
from .rubric import aggregate, round_half_up
from .sequence import score_order
from .span_resolver import resolve_all
from .tokenizer import count_words, normalize_word, tokenize

logger = logging.getLogger(__name__)

OracleCall = Callable[[qt.QuestionTypeSpec, EvaluationRequest], Awaitable[Union[str, Dict[str, Any]]]]

_LINEAR_STAGES = [
	EvaluationStage.IDLE,
	EvaluationStage.TOKENIZING,
	EvaluationStage.RESOLVING,
	EvaluationStage.AGGREGATING,
	EvaluationStage.DONE,
]


@dataclass
class _Graded:
	components: List[RubricComponent]
	is_correct: Optional[bool]
	feedback: str
	suggestions: List[str]
	detail: Optional[Outcome] = None
	resolved_errors: List[ResolvedError] = field(default_factory=list)
	dropped_errors: int = 0


def _require(value: Any, what: str, question_type: str) -> Any:
	if not value:
		raise ValueError(f"{question_type} requires {what}")
	return value


# ============================================================================
# ALGORITHMIC GRADERS
# ============================================================================

def _grade_dictation(request: EvaluationRequest, tokens: Sequence[Token]) -> _Graded:
	reference = _require(request.reference.text, "reference text", request.question_type)
	canonical = [t for t in tokenize(reference) if t.normalized]
	_require(canonical, "at least one reference word", request.question_type)
	outcome = match_dictation(tokens, canonical)
	component = RubricComponent(
		name="words",
		score=len(outcome.matched),
		max_score=len(canonical),
		description="Words typed exactly as dictated",
	)
	text, suggestions = messages.dictation(outcome, round_half_up(len(outcome.matched) / len(canonical) * 100))
	return _Graded([component], outcome.is_correct, text, suggestions, detail=outcome)


def _grade_order(request: EvaluationRequest, tokens: Sequence[Token]) -> _Graded:
	canonical = _require(request.reference.correct_order, "a correct order", request.question_type)
	outcome = score_order(request.response.ordered_items, canonical)
	# Repeated ids in the learner's order can count a pair twice
	score = min(outcome.correct_pairs, outcome.max_pairs)
	component = RubricComponent(
		name="pairs",
		score=score,
		max_score=outcome.max_pairs,
		description="Adjacent paragraph pairs in the correct order",
	)
	is_correct = outcome.max_pairs > 0 and score == outcome.max_pairs
	text, suggestions = messages.reorder(outcome)
	return _Graded([component], is_correct, text, suggestions, detail=outcome)


def _grade_options(request: EvaluationRequest, tokens: Sequence[Token]) -> _Graded:
	correct = _require(request.reference.correct_options, "correct options", request.question_type)
	selected = request.response.selected_options
	outcome = score_options(selected, correct)
	component = RubricComponent(
		name="options",
		score=partial_credit(outcome),
		max_score=outcome.total_correct,
		description="Correct options selected, less incorrect selections",
	)
	spec = qt.lookup(request.question_type)
	if spec.mode == qt.OPTIONS_SINGLE:
		text, suggestions = messages.single_choice(outcome, selected, correct, request.reference.options)
	else:
		text, suggestions = messages.multiple_choice(outcome)
	return _Graded([component], outcome.is_correct, text, suggestions, detail=outcome)


def _grade_highlight_words(request: EvaluationRequest, tokens: Sequence[Token]) -> _Graded:
	incorrect = _require(request.reference.incorrect_words, "the list of incorrect words", request.question_type)
	keys = {normalize_word(w) for w in incorrect} - {""}
	picked = {normalize_word(w) for w in request.response.highlighted_words} - {""}
	outcome = score_options(picked, keys)
	component = RubricComponent(
		name="words",
		score=partial_credit(outcome),
		max_score=outcome.total_correct,
		description="Incorrect words identified, less correct words highlighted",
	)
	text, suggestions = messages.highlight_words(outcome)
	return _Graded([component], outcome.is_correct, text, suggestions, detail=outcome)


def _grade_blanks(request: EvaluationRequest, tokens: Sequence[Token]) -> _Graded:
	correct = _require(request.reference.correct_blanks, "correct blank answers", request.question_type)
	outcome = score_blanks(request.response.blanks, correct)
	component = RubricComponent(
		name="blanks",
		score=outcome.correct_count,
		max_score=outcome.total_blanks,
		description="Blanks filled correctly",
	)
	text, suggestions = messages.blanks(outcome)
	return _Graded([component], outcome.is_correct, text, suggestions, detail=outcome)


_GRADERS: Dict[str, Callable[[EvaluationRequest, Sequence[Token]], _Graded]] = {
	qt.DICTATION: _grade_dictation,
	qt.ORDER: _grade_order,
	qt.OPTIONS_SINGLE: _grade_options,
	qt.OPTIONS_MULTI: _grade_options,
	qt.HIGHLIGHT_WORDS: _grade_highlight_words,
	qt.BLANKS: _grade_blanks,
}


# ============================================================================
# STAGE MACHINE
# ============================================================================

class EvaluationRun:
	"""A single evaluation moving forward through the stage machine."""

	def __init__(self, request: EvaluationRequest, spec: qt.QuestionTypeSpec, *, model_version: Optional[str] = None) -> None:
		self.request = request
		self.spec = spec
		self.model_version = model_version
		self.stage = EvaluationStage.IDLE

	def _advance(self, stage: EvaluationStage) -> None:
		if _LINEAR_STAGES.index(stage) <= _LINEAR_STAGES.index(self.stage):
			raise RuntimeError(f"illegal stage transition {self.stage.value} -> {stage.value}")
		self.stage = stage

	def _grade_oracle(self, tokens: Sequence[Token]) -> _Graded:
		rubric = parse_oracle_payload(self.spec.family, self.request.oracle_payload)
		resolved, dropped = resolve_all(to_error_reports(rubric), tokens)
		self._advance(EvaluationStage.AGGREGATING)
		text, suggestions = messages.oracle(rubric.feedback, rubric.suggestions)
		return _Graded(
			to_components(rubric, self.spec.components),
			None,
			text,
			suggestions,
			resolved_errors=resolved,
			dropped_errors=dropped,
		)

	def run(self) -> NormalizedEvaluation:
		self._advance(EvaluationStage.TOKENIZING)
		text = self.request.response.text
		tokens = tokenize(text)

		if self.spec.oracle_graded:
			self._advance(EvaluationStage.RESOLVING)
			graded = self._grade_oracle(tokens)
		else:
			self._advance(EvaluationStage.AGGREGATING)
			graded = _GRADERS[self.spec.mode](self.request, tokens)

		result = aggregate(graded.components, self.spec.pass_threshold)
		is_correct = result.passed if graded.is_correct is None else graded.is_correct

		word_count: Optional[int] = None
		compliant: Optional[bool] = None
		suggestions = graded.suggestions
		if self.spec.family in (qt.WRITING, qt.LISTENING) and self.spec.oracle_graded:
			word_count = count_words(text)
			ref = self.request.reference
			if ref.word_count_min is not None or ref.word_count_max is not None:
				note = messages.word_count(word_count, ref.word_count_min, ref.word_count_max)
				compliant = note is None
				if note:
					suggestions = [note, *suggestions]

		self._advance(EvaluationStage.DONE)
		return NormalizedEvaluation(
			question_type=self.spec.question_type,
			stage=self.stage,
			score=float(result.percentage),
			is_correct=is_correct,
			feedback=graded.feedback,
			suggestions=suggestions,
			components=graded.components,
			aggregate=result,
			detail=graded.detail,
			resolved_errors=graded.resolved_errors,
			dropped_errors=graded.dropped_errors,
			word_count=word_count,
			word_count_compliant=compliant,
			time_taken_seconds=self.request.time_taken_seconds,
			metadata=EvaluationMetadata(
				evaluation_method="ai" if self.spec.oracle_graded else "rule-based",
				model_version=self.model_version,
			),
		)


# ============================================================================
# PUBLIC API
# ============================================================================

def failed_evaluation(question_type: str, reason: str, *, time_taken_seconds: Optional[float] = None, model_version: Optional[str] = None) -> NormalizedEvaluation:
	"""Best-effort zero-score record for an evaluation that could not complete."""
	spec = qt.lookup(question_type)
	components = [
		RubricComponent(name=c.name, score=0, max_score=c.max_score, weight=c.weight, description=c.description)
		for c in spec.components
	]
	return NormalizedEvaluation(
		question_type=spec.question_type,
		stage=EvaluationStage.FAILED,
		score=0.0,
		is_correct=False,
		feedback=messages.UNAVAILABLE_FEEDBACK,
		suggestions=list(messages.UNAVAILABLE_SUGGESTIONS),
		components=components,
		aggregate=aggregate(components, spec.pass_threshold),
		time_taken_seconds=time_taken_seconds,
		failure_reason=reason,
		metadata=EvaluationMetadata(
			evaluation_method="ai" if spec.oracle_graded else "rule-based",
			model_version=model_version,
		),
	)


def evaluate(request: EvaluationRequest, *, model_version: Optional[str] = None) -> NormalizedEvaluation:
	"""Evaluate one response.

	Raises:
		UnsupportedQuestionType: if ``request.question_type`` has no table entry.
	"""
	spec = qt.lookup(request.question_type)
	run = EvaluationRun(request, spec, model_version=model_version)
	try:
		return run.run()
	except OraclePayloadError as e:
		logger.warning("%s evaluation failed at %s: %s", spec.question_type, run.stage.value, e)
		reason = str(e)
	except Exception as e:
		logger.exception("%s evaluation failed at %s", spec.question_type, run.stage.value)
		reason = f"{type(e).__name__}: {e}"
	return failed_evaluation(
		spec.question_type,
		reason,
		time_taken_seconds=request.time_taken_seconds,
		model_version=model_version,
	)


async def evaluate_with_oracle(
	request: EvaluationRequest,
	oracle: OracleCall,
	*,
	timeout: Optional[float] = None,
	model_version: Optional[str] = None,
) -> NormalizedEvaluation:
	"""Fetch the oracle rubric when one is needed, then evaluate.

	The oracle call is the only suspension point. If it fails or times out the
	caller still receives the terminal zero-score record.
	"""
	spec = qt.lookup(request.question_type)
	if not spec.oracle_graded or request.oracle_payload is not None:
		return evaluate(request, model_version=model_version)
	try:
		payload = await asyncio.wait_for(oracle(spec, request), timeout)
	except asyncio.TimeoutError:
		logger.warning("%s oracle call timed out after %ss", spec.question_type, timeout)
		return failed_evaluation(spec.question_type, "oracle call timed out", time_taken_seconds=request.time_taken_seconds, model_version=model_version)
	except Exception as e:
		logger.warning("%s oracle call failed: %s", spec.question_type, e)
		return failed_evaluation(spec.question_type, f"oracle call failed: {e}", time_taken_seconds=request.time_taken_seconds, model_version=model_version)
	return evaluate(request.model_copy(update={"oracle_payload": payload}), model_version=model_version)
