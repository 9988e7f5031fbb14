"""
Static question-type table.

Maps every supported PTE question-type tag to the grading mode the dispatcher
runs for it, the oracle payload family (for oracle-graded types), the pass
threshold and the rubric components the score is reported against.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Tuple

from ..errors import UnsupportedQuestionType

# Grading modes
ORACLE = "oracle"
DICTATION = "dictation"
ORDER = "order"
OPTIONS_SINGLE = "options_single"
OPTIONS_MULTI = "options_multi"
HIGHLIGHT_WORDS = "highlight_words"
BLANKS = "blanks"

# Question families
SPEAKING = "speaking"
WRITING = "writing"
LISTENING = "listening"
READING = "reading"

DEFAULT_PASS_THRESHOLD = 65


@dataclass(frozen=True)
class ComponentSpec:
	name: str
	max_score: float
	weight: float
	description: str


@dataclass(frozen=True)
class QuestionTypeSpec:
	question_type: str
	family: str
	mode: str
	pass_threshold: int = DEFAULT_PASS_THRESHOLD
	# Fixed components for oracle types; algorithmic types size theirs per question
	components: Tuple[ComponentSpec, ...] = ()

	@property
	def oracle_graded(self) -> bool:
		return self.mode == ORACLE


def _components(*rows: Tuple[str, float, str]) -> Tuple[ComponentSpec, ...]:
	total = sum(r[1] for r in rows) or 1
	return tuple(ComponentSpec(name, max_score, round(max_score / total, 4), desc) for name, max_score, desc in rows)


_SPEAKING_CORE = _components(
	("content", 40, "Accuracy of the repeated or retold content"),
	("pronunciation", 30, "Clarity of individual sounds and word stress"),
	("fluency", 30, "Smooth, natural delivery without hesitation"),
)

_TABLE: Dict[str, QuestionTypeSpec] = {}


def _register(question_type: str, family: str, mode: str, *, threshold: int = DEFAULT_PASS_THRESHOLD, components: Tuple[ComponentSpec, ...] = ()) -> None:
	_TABLE[question_type] = QuestionTypeSpec(question_type, family, mode, threshold, components)


# Speaking
_register("READ_ALOUD", SPEAKING, ORACLE, components=_components(
	("pronunciation", 25, "Clarity of individual sounds and word stress"),
	("fluency", 25, "Smooth, natural rhythm and phrasing"),
	("content", 25, "Every word of the text read, none added or skipped"),
	("intonation", 25, "Sentence stress and intonation"),
))
_register("REPEAT_SENTENCE", SPEAKING, ORACLE, components=_SPEAKING_CORE)
_register("DESCRIBE_IMAGE", SPEAKING, ORACLE, components=_components(
	("content", 30, "Relevance and detail of the description"),
	("vocabulary", 25, "Range and accuracy of descriptive vocabulary"),
	("grammar", 25, "Grammar and sentence structure"),
	("fluency", 20, "Fluency and pronunciation"),
))
_register("RE_TELL_LECTURE", SPEAKING, ORACLE, components=_SPEAKING_CORE)
_register("ANSWER_SHORT_QUESTION", SPEAKING, ORACLE, components=_components(
	("content", 1, "Answer is appropriate to the question"),
))

# Writing
_register("SUMMARIZE_WRITTEN_TEXT", WRITING, ORACLE, components=_components(
	("content", 30, "Captures the main ideas of the passage"),
	("grammar", 25, "Grammar and vocabulary"),
	("form", 20, "Word count compliance"),
	("coherence", 25, "Coherence and cohesion"),
))
_register("WRITE_ESSAY", WRITING, ORACLE, components=_components(
	("content", 25, "Content and development of ideas"),
	("organization", 25, "Organization and structure"),
	("grammar", 25, "Grammar and vocabulary"),
	("form", 25, "Word count and task response"),
))

# Listening
_register("SUMMARIZE_SPOKEN_TEXT", LISTENING, ORACLE, threshold=60, components=_components(
	("content", 30, "Captures the main points of the lecture"),
	("form", 20, "Word count compliance"),
	("grammar", 20, "Grammatical accuracy"),
	("vocabulary", 15, "Appropriate word choice"),
	("spelling", 15, "Spelling accuracy"),
))
_register("WRITE_FROM_DICTATION", LISTENING, DICTATION, threshold=60)
_register("HIGHLIGHT_INCORRECT_WORDS", LISTENING, HIGHLIGHT_WORDS)
_register("HIGHLIGHT_CORRECT_SUMMARY", LISTENING, OPTIONS_SINGLE)
_register("SELECT_MISSING_WORD", LISTENING, OPTIONS_SINGLE)
_register("MULTIPLE_CHOICE_SINGLE_ANSWER_LISTENING", LISTENING, OPTIONS_SINGLE)
_register("MULTIPLE_CHOICE_MULTIPLE_ANSWERS_LISTENING", LISTENING, OPTIONS_MULTI)
_register("LISTENING_FILL_IN_THE_BLANKS", LISTENING, BLANKS)

# Reading
_register("MULTIPLE_CHOICE_SINGLE_ANSWER_READING", READING, OPTIONS_SINGLE)
_register("MULTIPLE_CHOICE_MULTIPLE_ANSWERS_READING", READING, OPTIONS_MULTI)
_register("RE_ORDER_PARAGRAPHS", READING, ORDER)
_register("READING_FILL_IN_THE_BLANKS", READING, BLANKS)
_register("READING_WRITING_FILL_IN_THE_BLANKS", READING, BLANKS)


def lookup(question_type: str) -> QuestionTypeSpec:
	key = (question_type or "").strip().upper()
	spec = _TABLE.get(key)
	if spec is None:
		raise UnsupportedQuestionType(question_type)
	return spec


def supported_types() -> List[QuestionTypeSpec]:
	return list(_TABLE.values())


def describe(spec: QuestionTypeSpec) -> Dict[str, object]:
	return {
		"question_type": spec.question_type,
		"family": spec.family,
		"mode": spec.mode,
		"pass_threshold": spec.pass_threshold,
		"components": [
			{"name": c.name, "max_score": c.max_score, "weight": c.weight, "description": c.description}
			for c in spec.components
		],
	}

