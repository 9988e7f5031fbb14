from __future__ import annotations


class EvaluationError(Exception):
	"""Base class for errors raised by the evaluation engine."""


class UnsupportedQuestionType(EvaluationError):
	"""No lookup-table entry exists for a question-type tag.

	This is the only condition the dispatcher surfaces to its caller; it points
	at a configuration or schema mismatch rather than at bad learner input.
	"""

	def __init__(self, question_type: str) -> None:
		self.question_type = question_type
		super().__init__(f"Unsupported question type: {question_type}")


class OraclePayloadError(EvaluationError):
	"""The grading oracle returned something that cannot be read as a rubric."""


class OracleUnavailable(EvaluationError):
	"""No grading oracle is configured."""
