from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class _Frozen(BaseModel):
	model_config = ConfigDict(frozen=True)


# ============================================================================
# TOKENS AND SPANS
# ============================================================================

class Token(_Frozen):
	# 0-based position in whitespace-delimited order over the original text
	index: int = Field(ge=0)
	raw: str
	# Punctuation-stripped, lower-cased form used for every comparison
	normalized: str


class Span(_Frozen):
	"""Half-open token-index range ``[start, end)``."""
	start: int = Field(ge=0)
	end: int

	@model_validator(mode="after")
	def _check_order(self) -> "Span":
		if self.end <= self.start:
			raise ValueError(f"span end ({self.end}) must be greater than start ({self.start})")
		return self


# ============================================================================
# ORACLE ERROR REPORTS
# ============================================================================

class ErrorCategory(str, Enum):
	GRAMMAR = "grammar"
	SPELLING = "spelling"
	VOCABULARY = "vocabulary"
	PRONUNCIATION = "pronunciation"
	FLUENCY = "fluency"
	CONTENT = "content"


class ErrorContext(_Frozen):
	before: Optional[str] = None
	after: Optional[str] = None


class ErrorReport(_Frozen):
	"""An error annotation as claimed by the grading oracle (untrusted)."""
	text: str
	category: ErrorCategory
	approx_position: Optional[Span] = None
	context: Optional[ErrorContext] = None
	suggestion: Optional[str] = None


class ResolvedError(_Frozen):
	"""An oracle error pinned to an exact token span of the learner's response.

	Only the resolved span travels downstream; the oracle's own position and
	context hints are not part of this shape.
	"""
	text: str
	category: ErrorCategory
	suggestion: Optional[str] = None
	span: Span

	@classmethod
	def from_report(cls, report: ErrorReport, span: Span) -> "ResolvedError":
		return cls(text=report.text, category=report.category, suggestion=report.suggestion, span=span)


# ============================================================================
# RUBRIC
# ============================================================================

class RubricComponent(_Frozen):
	name: str
	score: float
	max_score: float = Field(ge=0)
	# Descriptive only; aggregation sums raw points
	weight: float = 1.0
	description: str = ""

	@model_validator(mode="after")
	def _check_bounds(self) -> "RubricComponent":
		if self.score < 0 or self.score > self.max_score:
			raise ValueError(f"component {self.name!r}: score {self.score} outside 0..{self.max_score}")
		return self


class AggregateResult(_Frozen):
	achieved: float
	max: float
	percentage: int
	passed: bool


# ============================================================================
# ALGORITHMIC OUTCOMES
# ============================================================================

class DictationOutcome(_Frozen):
	kind: Literal["dictation"] = "dictation"
	matched: List[Tuple[str, str]] = Field(default_factory=list)  # (canonical, user)
	misspelled: List[Tuple[str, str]] = Field(default_factory=list)  # (user, canonical)
	missing: List[str] = Field(default_factory=list)
	extra: List[str] = Field(default_factory=list)

	@computed_field
	@property
	def is_correct(self) -> bool:
		return not self.missing and not self.extra and not self.misspelled


class OrderOutcome(_Frozen):
	kind: Literal["order"] = "order"
	correct_pairs: int = Field(ge=0)
	max_pairs: int = Field(ge=0)


class OptionOutcome(_Frozen):
	kind: Literal["options"] = "options"
	hits: int
	wrong: int
	missed: int
	total_correct: int
	is_correct: bool


class BlankResult(_Frozen):
	blank_id: str
	user_answer: Optional[str] = None
	correct_answer: str
	is_correct: bool


class BlanksOutcome(_Frozen):
	kind: Literal["blanks"] = "blanks"
	results: List[BlankResult] = Field(default_factory=list)
	correct_count: int = 0
	total_blanks: int = 0
	is_correct: bool = False


Outcome = Annotated[
	Union[DictationOutcome, OrderOutcome, OptionOutcome, BlanksOutcome],
	Field(discriminator="kind"),
]


# ============================================================================
# EVALUATION REQUEST / RECORD
# ============================================================================

class Reference(BaseModel):
	"""Canonical data for one question, as supplied by the persistence layer."""
	text: Optional[str] = None
	options: Dict[str, str] = Field(default_factory=dict)
	correct_options: List[str] = Field(default_factory=list)
	correct_order: List[str] = Field(default_factory=list)
	correct_blanks: Dict[str, str] = Field(default_factory=dict)
	incorrect_words: List[str] = Field(default_factory=list)
	word_count_min: Optional[int] = None
	word_count_max: Optional[int] = None


class UserResponse(BaseModel):
	text: Optional[str] = None
	selected_options: List[str] = Field(default_factory=list)
	ordered_items: List[str] = Field(default_factory=list)
	blanks: Dict[str, str] = Field(default_factory=dict)
	highlighted_words: List[str] = Field(default_factory=list)


class EvaluationRequest(BaseModel):
	question_type: str
	reference: Reference = Field(default_factory=Reference)
	response: UserResponse = Field(default_factory=UserResponse)
	# Raw oracle rubric, normally an object or JSON text; anything else fails the evaluation
	oracle_payload: Optional[Any] = None
	time_taken_seconds: Optional[float] = None


class EvaluationStage(str, Enum):
	IDLE = "idle"
	TOKENIZING = "tokenizing"
	RESOLVING = "resolving"
	AGGREGATING = "aggregating"
	DONE = "done"
	FAILED = "failed"


class EvaluationMetadata(_Frozen):
	evaluation_method: Literal["ai", "rule-based"]
	evaluated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
	model_version: Optional[str] = None


class NormalizedEvaluation(_Frozen):
	question_type: str
	stage: EvaluationStage
	score: float
	is_correct: bool
	feedback: str
	suggestions: List[str] = Field(default_factory=list)
	components: List[RubricComponent] = Field(default_factory=list)
	aggregate: AggregateResult
	detail: Optional[Outcome] = None
	resolved_errors: List[ResolvedError] = Field(default_factory=list)
	dropped_errors: int = 0
	word_count: Optional[int] = None
	word_count_compliant: Optional[bool] = None
	time_taken_seconds: Optional[float] = None
	failure_reason: Optional[str] = None
	metadata: EvaluationMetadata
