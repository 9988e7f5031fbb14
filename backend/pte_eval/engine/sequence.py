from __future__ import annotations
from typing import Dict, Hashable, Sequence

from ..models import OrderOutcome


def score_order(user_order: Sequence[Hashable], canonical_order: Sequence[Hashable]) -> OrderOutcome:
	"""Adjacency-pair scoring for re-order tasks.

	Each consecutive pair in the learner's order earns a point when the same two
	ids sit next to each other, in the same direction, in the canonical order.
	A sequence that is internally coherent but shifted still earns credit.
	"""
	position: Dict[Hashable, int] = {}
	for i, item in enumerate(canonical_order):
		position.setdefault(item, i)

	correct_pairs = 0
	for a, b in zip(user_order, user_order[1:]):
		ia, ib = position.get(a), position.get(b)
		if ia is not None and ib is not None and ib == ia + 1:
			correct_pairs += 1

	return OrderOutcome(correct_pairs=correct_pairs, max_pairs=max(0, len(canonical_order) - 1))
