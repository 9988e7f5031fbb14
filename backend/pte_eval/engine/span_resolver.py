"""
Span resolution for oracle error reports.

The grading oracle reasons over meaning, so the positions it reports are often
wrong or missing. Each report is pinned to the learner's actual tokens by
phrase matching, and repeated occurrences are disambiguated with a fixed
four-tier policy:

1. no occurrence: the report cannot be placed and is dropped;
2. a single occurrence wins outright;
3. several occurrences: the best context match (+50 for the preceding word,
   +50 for the following word) among those scoring above zero, leftmost first;
4. no context match: if the oracle gave an approximate position, an earlier
   occurrence replaces the default only when it is more than
   ``PROXIMITY_MARGIN`` tokens closer to that position; the default is the
   rightmost occurrence.

Tier 4 is a loose heuristic and changes outcomes; keep it exactly as is.
"""

from __future__ import annotations
import logging
from typing import List, Optional, Sequence, Tuple

from ..models import ErrorReport, ResolvedError, Span, Token
from .tokenizer import normalized_words

logger = logging.getLogger(__name__)

CONTEXT_MATCH_SCORE = 50
PROXIMITY_MARGIN = 5


def find_occurrences(words: Sequence[str], tokens: Sequence[Token]) -> List[int]:
	"""Start indices where ``words`` matches ``tokens`` contiguously."""
	n = len(words)
	if n == 0:
		return []
	starts: List[int] = []
	for start in range(len(tokens) - n + 1):
		if all(tokens[start + k].normalized == words[k] for k in range(n)):
			starts.append(start)
	return starts


def _context_score(start: int, length: int, error: ErrorReport, tokens: Sequence[Token]) -> int:
	context = error.context
	if context is None:
		return 0
	score = 0
	before = normalized_words(context.before)
	if before and start > 0 and tokens[start - 1].normalized == before[-1]:
		score += CONTEXT_MATCH_SCORE
	after = normalized_words(context.after)
	end = start + length
	if after and end < len(tokens) and tokens[end].normalized == after[0]:
		score += CONTEXT_MATCH_SCORE
	return score


def _pick(starts: List[int], length: int, error: ErrorReport, tokens: Sequence[Token]) -> int:
	if len(starts) == 1:
		return starts[0]

	scored = [(start, _context_score(start, length, error, tokens)) for start in starts]
	best_start, best_score = None, 0
	for start, score in scored:
		if score > best_score:
			best_start, best_score = start, score
	if best_start is not None:
		return best_start

	best = starts[-1]
	if error.approx_position is not None:
		target = error.approx_position.start
		for start in starts:
			if abs(best - target) - abs(start - target) > PROXIMITY_MARGIN:
				best = start
	return best


def resolve(error: ErrorReport, tokens: Sequence[Token]) -> Optional[Span]:
	words = normalized_words(error.text)
	starts = find_occurrences(words, tokens)
	if not starts:
		return None
	start = _pick(starts, len(words), error, tokens)
	return Span(start=start, end=start + len(words))


def resolve_all(errors: Sequence[ErrorReport], tokens: Sequence[Token]) -> Tuple[List[ResolvedError], int]:
	"""Resolve every report against one tokenized response.

	Returns the resolved errors in report order and the number of reports that
	could not be placed. An unplaceable report never affects its siblings.
	"""
	resolved: List[ResolvedError] = []
	dropped = 0
	for error in errors:
		span = resolve(error, tokens)
		if span is None:
			dropped += 1
			logger.debug("dropping %s error %r: not found in response", error.category.value, error.text)
			continue
		resolved.append(ResolvedError.from_report(error, span))
	return resolved, dropped
