from __future__ import annotations
import math
from typing import List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from ..models import DictationOutcome, Token

MIN_TOLERANCE = 2
TOLERANCE_RATIO = 0.25


def edit_distance(a: str, b: str) -> int:
	# Unit-cost insert/delete/substitute, no transposition discount
	return Levenshtein.distance(a, b)


def tolerance(a: str, b: str) -> int:
	return max(MIN_TOLERANCE, math.ceil(TOLERANCE_RATIO * max(len(a), len(b))))


def within_tolerance(a: str, b: str) -> bool:
	return edit_distance(a, b) <= tolerance(a, b)


def match_dictation(user_tokens: Sequence[Token], canonical_tokens: Sequence[Token]) -> DictationOutcome:
	"""Align a typed dictation against the canonical transcript.

	Matching is order-independent (multiset, not sequence alignment): an exact
	pass pairs identical normalized words first, then a fuzzy pass pairs each
	remaining canonical word with the first unused user word within edit
	tolerance. Whatever is left over is missing (canonical) or extra (user).
	"""
	user = [t for t in user_tokens if t.normalized]
	canonical = [t for t in canonical_tokens if t.normalized]

	used = [False] * len(user)
	paired: List[Optional[Tuple[str, Token]]] = [None] * len(canonical)

	for ci, ctok in enumerate(canonical):
		for ui, utok in enumerate(user):
			if not used[ui] and utok.normalized == ctok.normalized:
				used[ui] = True
				paired[ci] = ("exact", utok)
				break

	for ci, ctok in enumerate(canonical):
		if paired[ci] is not None:
			continue
		for ui, utok in enumerate(user):
			if not used[ui] and within_tolerance(utok.normalized, ctok.normalized):
				used[ui] = True
				paired[ci] = ("fuzzy", utok)
				break

	matched: List[Tuple[str, str]] = []
	misspelled: List[Tuple[str, str]] = []
	missing: List[str] = []
	for ctok, pair in zip(canonical, paired):
		if pair is None:
			missing.append(ctok.raw)
		elif pair[0] == "exact":
			matched.append((ctok.raw, pair[1].raw))
		else:
			misspelled.append((pair[1].raw, ctok.raw))
	extra = [utok.raw for ui, utok in enumerate(user) if not used[ui]]

	return DictationOutcome(matched=matched, misspelled=misspelled, missing=missing, extra=extra)
