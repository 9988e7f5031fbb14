from __future__ import annotations
from typing import Hashable, Iterable

from ..models import OptionOutcome


def score_options(selected: Iterable[Hashable], correct: Iterable[Hashable]) -> OptionOutcome:
	"""Set-difference scoring for single- and multi-select questions."""
	chosen = set(selected)
	keys = set(correct)
	hits = len(chosen & keys)
	wrong = len(chosen - keys)
	missed = len(keys - chosen)
	return OptionOutcome(
		hits=hits,
		wrong=wrong,
		missed=missed,
		total_correct=len(keys),
		is_correct=(wrong == 0 and missed == 0),
	)


def partial_credit(outcome: OptionOutcome) -> float:
	# Each wrong pick cancels one correct pick; never below zero
	return float(max(0, outcome.hits - outcome.wrong))
