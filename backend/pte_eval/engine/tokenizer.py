from __future__ import annotations
import re
from typing import List, Optional

from ..models import Token

# Characters removed from every word before comparison. Both sides of every
# comparison are normalized, so "don't" and "dont" compare equal.
PUNCTUATION = ".,!?;:-()[]{}\"'“”‘’"

_STRIP_TABLE = str.maketrans("", "", PUNCTUATION)
_WHITESPACE = re.compile(r"\s+")


def normalize_word(word: str) -> str:
	return word.translate(_STRIP_TABLE).lower()


def split_words(text: Optional[str]) -> List[str]:
	if not text:
		return []
	return [w for w in _WHITESPACE.split(text) if w]


def tokenize(text: Optional[str]) -> List[Token]:
	"""Split a response into indexed word tokens.

	Tokens are whitespace-delimited; a token whose normalized form is empty
	(a lone dash, say) still keeps its index so spans line up with the text the
	learner actually produced.
	"""
	return [
		Token(index=i, raw=word, normalized=normalize_word(word))
		for i, word in enumerate(split_words(text))
	]


def normalized_words(text: Optional[str]) -> List[str]:
	"""Normalized forms of ``text`` with punctuation-only fragments dropped."""
	return [n for n in (normalize_word(w) for w in split_words(text)) if n]


def count_words(text: Optional[str]) -> int:
	return len(split_words(text))
