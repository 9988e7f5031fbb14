from __future__ import annotations
import json
import logging
import httpx
from typing import Any, Dict, List, Optional, Tuple

from .engine import question_types as qt
from .engine.dispatcher import evaluate_with_oracle
from .errors import OracleUnavailable
from .models import EvaluationRequest, NormalizedEvaluation
from .settings import settings

logger = logging.getLogger(__name__)

# error array names the oracle is asked to fill, per family
_ERROR_ARRAYS: Dict[str, List[str]] = {
	qt.SPEAKING: ["pronunciationErrors", "fluencyErrors", "contentErrors", "grammarErrors", "vocabularyIssues"],
	qt.WRITING: ["grammarErrors", "spellingErrors", "vocabularyIssues", "contentErrors"],
	qt.LISTENING: ["grammarErrors", "spellingErrors", "vocabularyIssues", "contentErrors", "listeningErrors"],
}

# Sent with every Gemini grading request
_GRADING_CONFIG = {"temperature": 0.3, "responseMimeType": "application/json"}


def _gemini_endpoint(model: str) -> Tuple[str, bool]:
	"""Return the generateContent URL and whether the key goes in the query string."""
	if settings.gemini_provider == "vertex":
		region = settings.vertex_region
		project = settings.vertex_project or "placeholder-project"
		return (
			f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{model}:generateContent",
			False,
		)
	return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent", True


def _gemini_text(data: Dict[str, Any]) -> str:
	return data["candidates"][0]["content"]["parts"][0]["text"]


def _openrouter_text(data: Dict[str, Any]) -> str:
	return data["choices"][0]["message"]["content"]


class OracleClient:
	"""Grading oracle over Gemini, falling back to OpenRouter when that is configured."""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		self.fallback_key = settings.openrouter_api_key
		if not self.api_key and not self.fallback_key:
			raise OracleUnavailable("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		default_url, self._key_in_query = _gemini_endpoint(self.model)
		self.base_url = base_url or default_url
		self._client = httpx.AsyncClient(timeout=settings.oracle_timeout_seconds, transport=transport)

	@property
	def model_version(self) -> str:
		return self.model

	async def generate(self, prompt: str) -> str:
		if not self.api_key:
			return await self._generate_fallback(prompt)
		try:
			return await self._generate_gemini(prompt)
		except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as primary_err:
			if not self.fallback_key:
				raise
			logger.info("Gemini call failed (%s); trying OpenRouter fallback", primary_err)
			try:
				return await self._generate_fallback(prompt)
			except Exception as fallback_err:
				raise RuntimeError(
					f"Gemini primary call failed ({primary_err}); fallback via OpenRouter also failed"
				) from fallback_err

	async def grade(self, spec: qt.QuestionTypeSpec, request: EvaluationRequest) -> str:
		"""Ask the oracle for the rubric of one response; returns the raw output."""
		return await self.generate(build_grading_prompt(spec, request))

	async def aclose(self) -> None:
		await self._client.aclose()

	async def _generate_gemini(self, prompt: str) -> str:
		if self._key_in_query:
			params, headers = {"key": self.api_key}, {}
		else:
			params, headers = {}, {"x-goog-api-key": self.api_key}
		r = await self._client.post(
			self.base_url,
			params=params,
			headers=headers,
			json={"contents": [{"parts": [{"text": prompt}]}], "generationConfig": _GRADING_CONFIG},
		)
		r.raise_for_status()
		return _gemini_text(r.json())

	async def _generate_fallback(self, prompt: str) -> str:
		headers = {
			"Authorization": f"Bearer {self.fallback_key}",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		r = await self._client.post(
			settings.openrouter_base_url,
			headers={k: v for k, v in headers.items() if v},
			json={"model": settings.openrouter_model, "messages": [{"role": "user", "content": prompt}]},
		)
		r.raise_for_status()
		return _openrouter_text(r.json())


def build_grading_prompt(spec: qt.QuestionTypeSpec, request: EvaluationRequest) -> str:
	task = spec.question_type.replace("_", " ").title()
	scores = {c.name: f"number 0-{c.max_score:g} ({c.description})" for c in spec.components}
	errors = {name: [{"text": "exact words from the response", "position": {"start": 0, "end": 1}, "context": {"before": "word before", "after": "word after"}, "suggestion": "correction"}] for name in _ERROR_ARRAYS.get(spec.family, [])}
	shape = {"scores": scores, "feedback": "string", "suggestions": ["string"], "errorAnalysis": errors}
	reference = request.reference
	lines = [
		f"You are a PTE Academic examiner. Evaluate this {task} response.",
		"",
	]
	if reference.text:
		lines.append(f'Reference / task text: "{reference.text}"')
	lines.append(f'Learner response: "{request.response.text or ""}"')
	if reference.word_count_min is not None or reference.word_count_max is not None:
		lines.append(f"Required word count: {reference.word_count_min or 0}-{reference.word_count_max or 'any'}")
	lines += [
		"",
		"Score each component within its range. For every error, copy the offending words",
		"exactly as they appear in the learner response; position is the 0-based word index.",
		"",
		"Return ONLY a JSON object of this shape:",
		json.dumps(shape, indent=2),
	]
	return "\n".join(lines)


async def grade_with_oracle(request: EvaluationRequest, client: Optional[OracleClient] = None) -> NormalizedEvaluation:
	"""Evaluate a request, calling the configured oracle when its type needs one."""
	owned = client is None
	if client is None:
		client = OracleClient()
	try:
		return await evaluate_with_oracle(
			request,
			client.grade,
			timeout=settings.oracle_timeout_seconds,
			model_version=client.model_version,
		)
	finally:
		if owned:
			await client.aclose()
