"""
Grading-oracle payload variants.

The oracle answers with a loosely-shaped JSON rubric whose field names differ
per question family. Each family gets its own pydantic model (a tagged
variant on ``family``) and the mapping into the engine's ``RubricComponent`` /
``ErrorReport`` shapes happens here, so schema drift on the oracle side stays
out of the scoring code.
"""

from __future__ import annotations
import json
import logging
import math
import re
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from ..errors import OraclePayloadError
from ..models import ErrorCategory, ErrorContext, ErrorReport, RubricComponent, Span
from .question_types import ComponentSpec

logger = logging.getLogger(__name__)


# ============================================================================
# ERROR ENTRIES
# ============================================================================

class OracleErrorEntry(BaseModel):
	model_config = ConfigDict(extra="ignore")

	text: str = ""
	position: Optional[Dict[str, Any]] = None
	context: Optional[Dict[str, Any]] = None
	suggestion: Optional[str] = None

	@field_validator("text", mode="before")
	@classmethod
	def _text(cls, value: Any) -> str:
		return "" if value is None else str(value)

	@field_validator("position", "context", mode="before")
	@classmethod
	def _mapping_or_none(cls, value: Any) -> Optional[Dict[str, Any]]:
		return value if isinstance(value, dict) else None

	@field_validator("suggestion", mode="before")
	@classmethod
	def _suggestion(cls, value: Any) -> Optional[str]:
		return None if value is None else str(value)


def _coerce_entries(value: Any) -> List[Dict[str, Any]]:
	# Oracles sometimes return bare strings or stray nulls inside error arrays
	if not isinstance(value, list):
		return []
	entries: List[Dict[str, Any]] = []
	for item in value:
		if isinstance(item, str):
			entries.append({"text": item})
		elif isinstance(item, dict):
			entries.append(item)
	return entries


class _ErrorAnalysis(BaseModel):
	model_config = ConfigDict(extra="ignore")

	@field_validator("*", mode="before")
	@classmethod
	def _entries(cls, value: Any) -> List[Dict[str, Any]]:
		return _coerce_entries(value)


class SpeakingErrorAnalysis(_ErrorAnalysis):
	pronunciationErrors: List[OracleErrorEntry] = Field(default_factory=list)
	fluencyErrors: List[OracleErrorEntry] = Field(default_factory=list)
	contentErrors: List[OracleErrorEntry] = Field(default_factory=list)
	grammarErrors: List[OracleErrorEntry] = Field(default_factory=list)
	vocabularyIssues: List[OracleErrorEntry] = Field(default_factory=list)


class WritingErrorAnalysis(_ErrorAnalysis):
	grammarErrors: List[OracleErrorEntry] = Field(default_factory=list)
	spellingErrors: List[OracleErrorEntry] = Field(default_factory=list)
	vocabularyIssues: List[OracleErrorEntry] = Field(default_factory=list)
	contentErrors: List[OracleErrorEntry] = Field(default_factory=list)


class ListeningErrorAnalysis(WritingErrorAnalysis):
	listeningErrors: List[OracleErrorEntry] = Field(default_factory=list)


# ============================================================================
# FAMILY VARIANTS
# ============================================================================

class _OracleRubric(BaseModel):
	model_config = ConfigDict(extra="ignore", populate_by_name=True)

	# Older prompts return the per-dimension numbers under "detailedAnalysis"
	scores: Dict[str, Any] = Field(validation_alias=AliasChoices("scores", "detailedAnalysis"))
	feedback: Optional[str] = None
	suggestions: List[str] = Field(default_factory=list)

	# error array name -> category
	ERROR_FIELDS: ClassVar[Dict[str, ErrorCategory]] = {}
	# component name -> accepted score keys, first present wins
	SCORE_KEYS: ClassVar[Dict[str, Tuple[str, ...]]] = {}

	@field_validator("errorAnalysis", mode="before", check_fields=False)
	@classmethod
	def _analysis_object(cls, value: Any) -> Dict[str, Any]:
		return value if isinstance(value, dict) else {}

	@field_validator("feedback", mode="before")
	@classmethod
	def _feedback_text(cls, value: Any) -> Optional[str]:
		if value is None:
			return None
		if isinstance(value, str):
			return value.strip() or None
		return json.dumps(value)

	@field_validator("suggestions", mode="before")
	@classmethod
	def _suggestion_list(cls, value: Any) -> List[str]:
		if isinstance(value, str):
			return [value]
		if not isinstance(value, list):
			return []
		return [str(v).strip() for v in value if v is not None and str(v).strip()]


class SpeakingRubric(_OracleRubric):
	family: Literal["speaking"] = "speaking"
	errorAnalysis: SpeakingErrorAnalysis = Field(default_factory=SpeakingErrorAnalysis)

	ERROR_FIELDS: ClassVar[Dict[str, ErrorCategory]] = {
		"pronunciationErrors": ErrorCategory.PRONUNCIATION,
		"fluencyErrors": ErrorCategory.FLUENCY,
		"contentErrors": ErrorCategory.CONTENT,
		"grammarErrors": ErrorCategory.GRAMMAR,
		"vocabularyIssues": ErrorCategory.VOCABULARY,
	}
	SCORE_KEYS: ClassVar[Dict[str, Tuple[str, ...]]] = {
		"content": ("content", "contentAccuracy", "content_accuracy"),
		"pronunciation": ("pronunciation", "pronunciationScore"),
		"fluency": ("fluency", "fluencyScore", "oralFluency"),
		"intonation": ("intonation", "stressAndIntonation"),
		"vocabulary": ("vocabulary", "vocabularyScore"),
		"grammar": ("grammar", "grammarScore"),
	}


class WritingRubric(_OracleRubric):
	family: Literal["writing"] = "writing"
	errorAnalysis: WritingErrorAnalysis = Field(default_factory=WritingErrorAnalysis)

	ERROR_FIELDS: ClassVar[Dict[str, ErrorCategory]] = {
		"grammarErrors": ErrorCategory.GRAMMAR,
		"spellingErrors": ErrorCategory.SPELLING,
		"vocabularyIssues": ErrorCategory.VOCABULARY,
		"contentErrors": ErrorCategory.CONTENT,
	}
	SCORE_KEYS: ClassVar[Dict[str, Tuple[str, ...]]] = {
		"content": ("content", "contentAccuracy", "content_accuracy"),
		"form": ("form", "wordCount", "word_count"),
		"grammar": ("grammar", "grammarScore"),
		"vocabulary": ("vocabulary", "vocabularyScore"),
		"spelling": ("spelling", "spellingScore"),
		"coherence": ("coherence", "coherenceScore", "cohesion"),
		"organization": ("organization", "structure"),
	}


class ListeningRubric(WritingRubric):
	family: Literal["listening"] = "listening"  # type: ignore[assignment]
	errorAnalysis: ListeningErrorAnalysis = Field(default_factory=ListeningErrorAnalysis)

	ERROR_FIELDS: ClassVar[Dict[str, ErrorCategory]] = {
		**WritingRubric.ERROR_FIELDS,
		"listeningErrors": ErrorCategory.CONTENT,
	}


OracleRubric = Annotated[
	Union[SpeakingRubric, WritingRubric, ListeningRubric],
	Field(discriminator="family"),
]

_rubric_adapter: TypeAdapter = TypeAdapter(OracleRubric)


# ============================================================================
# PARSING
# ============================================================================

def extract_json_object(text: str) -> Dict[str, Any]:
	"""Pull the first JSON object out of raw oracle output.

	Handles bare JSON, JSON wrapped in a markdown code block, and JSON embedded
	in surrounding prose.
	"""
	try:
		data = json.loads(text)
		if isinstance(data, dict):
			return data
	except (TypeError, ValueError):
		pass

	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
	if code_block:
		try:
			data = json.loads(code_block.group(1))
			if isinstance(data, dict):
				return data
		except ValueError:
			pass

	first = text.find("{")
	last = text.rfind("}")
	if first != -1 and last > first:
		try:
			data = json.loads(text[first : last + 1])
			if isinstance(data, dict):
				return data
		except ValueError:
			pass

	raise OraclePayloadError("oracle output does not contain a JSON object")


def parse_oracle_payload(family: str, raw: Any) -> Union[SpeakingRubric, WritingRubric, ListeningRubric]:
	if raw is None:
		raise OraclePayloadError("no oracle payload supplied")
	if isinstance(raw, str):
		data = extract_json_object(raw)
	elif isinstance(raw, dict):
		data = raw
	else:
		raise OraclePayloadError(f"oracle payload must be an object, got {type(raw).__name__}")

	if not isinstance(data.get("scores", data.get("detailedAnalysis")), dict):
		raise OraclePayloadError("oracle payload has no 'scores' object")

	try:
		return _rubric_adapter.validate_python({**data, "family": family})
	except ValidationError as e:
		raise OraclePayloadError(f"malformed {family} oracle payload: {e.error_count()} validation error(s)") from e


# ============================================================================
# MAPPING
# ============================================================================

def _numeric(value: Any) -> Optional[float]:
	if isinstance(value, bool):
		return None
	if isinstance(value, dict):
		# {"score": 18, "maxScore": 25} style entries
		value = value.get("score")
	try:
		number = float(value)
	except (TypeError, ValueError):
		return None
	if math.isnan(number) or math.isinf(number):
		return None
	return number


def to_components(rubric: _OracleRubric, specs: Sequence[ComponentSpec]) -> List[RubricComponent]:
	components: List[RubricComponent] = []
	for spec in specs:
		keys = rubric.SCORE_KEYS.get(spec.name, (spec.name,))
		value: Optional[float] = None
		for key in keys:
			if key in rubric.scores:
				value = _numeric(rubric.scores[key])
				break
		if value is None:
			logger.debug("oracle score %r missing or non-numeric; using 0", spec.name)
			value = 0.0
		score = min(max(value, 0.0), spec.max_score)
		components.append(
			RubricComponent(
				name=spec.name,
				score=score,
				max_score=spec.max_score,
				weight=spec.weight,
				description=spec.description,
			)
		)
	return components


def _approx_span(position: Optional[Dict[str, Any]]) -> Optional[Span]:
	if not position:
		return None
	try:
		start = int(position.get("start"))
		end = position.get("end")
		end = start + 1 if end is None else int(end)
	except (TypeError, ValueError, OverflowError):
		return None
	if start < 0 or end <= start:
		return None
	return Span(start=start, end=end)


def _context(context: Optional[Dict[str, Any]]) -> Optional[ErrorContext]:
	if not context:
		return None
	before = context.get("before")
	after = context.get("after")
	before = before if isinstance(before, str) and before.strip() else None
	after = after if isinstance(after, str) and after.strip() else None
	if before is None and after is None:
		return None
	return ErrorContext(before=before, after=after)


def to_error_reports(rubric: _OracleRubric) -> List[ErrorReport]:
	reports: List[ErrorReport] = []
	for field_name, category in rubric.ERROR_FIELDS.items():
		for entry in getattr(rubric.errorAnalysis, field_name, []):
			text = (entry.text or "").strip()
			if not text:
				continue
			reports.append(
				ErrorReport(
					text=text,
					category=category,
					approx_position=_approx_span(entry.position),
					context=_context(entry.context),
					suggestion=(entry.suggestion or "").strip() or None,
				)
			)
	return reports
