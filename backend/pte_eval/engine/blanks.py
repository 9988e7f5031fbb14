from __future__ import annotations
from typing import Mapping, Optional

from ..models import BlankResult, BlanksOutcome


def _fold(value: Optional[str]) -> Optional[str]:
	if value is None:
		return None
	return value.casefold().strip()


def score_blanks(user_blanks: Mapping[str, str], correct_blanks: Mapping[str, str]) -> BlanksOutcome:
	results = []
	for blank_id, correct_answer in correct_blanks.items():
		user_answer = user_blanks.get(blank_id)
		is_correct = user_answer is not None and _fold(user_answer) == _fold(correct_answer)
		results.append(
			BlankResult(
				blank_id=str(blank_id),
				user_answer=user_answer,
				correct_answer=correct_answer,
				is_correct=is_correct,
			)
		)
	correct_count = sum(1 for r in results if r.is_correct)
	return BlanksOutcome(
		results=results,
		correct_count=correct_count,
		total_blanks=len(results),
		is_correct=bool(results) and correct_count == len(results),
	)
