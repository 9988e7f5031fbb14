from __future__ import annotations
import math
from typing import Sequence

from ..models import AggregateResult, RubricComponent


def round_half_up(value: float) -> int:
	return int(math.floor(value + 0.5))


def aggregate(components: Sequence[RubricComponent], pass_threshold_pct: int) -> AggregateResult:
	"""Combine rubric components into one score and pass decision.

	Totals are raw point sums; a component's weight is reporting metadata and
	does not rescale its contribution.
	"""
	if not 0 <= pass_threshold_pct <= 100:
		raise ValueError(f"pass threshold must be within 0..100, got {pass_threshold_pct}")
	names = [c.name for c in components]
	if len(set(names)) != len(names):
		raise ValueError(f"rubric component names must be unique: {names}")

	achieved = sum(c.score for c in components)
	maximum = sum(c.max_score for c in components)
	percentage = round_half_up(achieved / maximum * 100) if maximum > 0 else 0
	return AggregateResult(
		achieved=achieved,
		max=maximum,
		percentage=percentage,
		passed=percentage >= pass_threshold_pct,
	)
