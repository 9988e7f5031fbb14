from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import BlanksOutcome, DictationOutcome, OptionOutcome, OrderOutcome

UNAVAILABLE_FEEDBACK = "Unable to evaluate response at this time."
UNAVAILABLE_SUGGESTIONS = ["Please try again later"]
NO_FEEDBACK = "No feedback available"


def _option_text(options: Dict[str, str], ids: Sequence[str]) -> str:
	for option_id in ids:
		if option_id in options:
			return options[option_id]
	return "Unknown option"


def single_choice(outcome: OptionOutcome, selected: Sequence[str], correct: Sequence[str], options: Dict[str, str]) -> Tuple[str, List[str]]:
	selected_text = _option_text(options, selected)
	if outcome.is_correct:
		return (
			f'Correct! You selected: "{selected_text}"',
			["Great job! Continue practicing similar questions."],
		)
	correct_text = _option_text(options, correct)
	return (
		f'Incorrect. You selected: "{selected_text}". The correct answer is: "{correct_text}"',
		[
			"Review the passage/audio more carefully",
			"Look for key information that supports the correct answer",
			"Practice elimination techniques for wrong options",
		],
	)


def multiple_choice(outcome: OptionOutcome) -> Tuple[str, List[str]]:
	return (
		f"You selected {outcome.hits} correct and {outcome.wrong} incorrect options "
		f"out of {outcome.total_correct} total correct answers.",
		[
			"Read all options carefully before selecting",
			"Look for multiple pieces of evidence in the text/audio",
			"Avoid selecting options that are only partially correct",
		],
	)


def highlight_words(outcome: OptionOutcome) -> Tuple[str, List[str]]:
	return (
		f"You correctly identified {outcome.hits} incorrect words and "
		f"incorrectly highlighted {outcome.wrong} correct words.",
		[
			"Listen carefully to identify differences between audio and text",
			"Focus on pronunciation and word stress patterns",
			"Practice with different accents and speaking speeds",
		],
	)


def reorder(outcome: OrderOutcome) -> Tuple[str, List[str]]:
	return (
		f"You got {outcome.correct_pairs} out of {outcome.max_pairs} paragraph pairs in the correct order.",
		[
			"Look for logical connectors between paragraphs",
			"Identify the introduction and conclusion paragraphs first",
			"Follow the chronological or logical flow of ideas",
		],
	)


def blanks(outcome: BlanksOutcome) -> Tuple[str, List[str]]:
	return (
		f"You filled {outcome.correct_count} out of {outcome.total_blanks} blanks correctly.",
		[
			"Pay attention to grammar and word forms",
			"Consider the context around each blank",
			"Review collocations and common word combinations",
		],
	)


def dictation(outcome: DictationOutcome, percentage: int) -> Tuple[str, List[str]]:
	total = len(outcome.matched) + len(outcome.misspelled) + len(outcome.missing)
	message = f"You typed {len(outcome.matched)} out of {total} words correctly ({percentage}% accuracy)."
	if outcome.misspelled:
		pairs = ", ".join(f'"{user}" for "{canonical}"' for user, canonical in outcome.misspelled)
		message += f" Misspelled: {pairs}."
	suggestions = ["Focus on spelling accuracy"]
	if outcome.missing:
		suggestions.append("Listen for every word; some words were missed")
	if outcome.extra:
		suggestions.append("Type only the words you hear; some words were added")
	suggestions.append("Practice typing while listening to improve speed and accuracy")
	return message, suggestions


def oracle(feedback: Optional[str], suggestions: Sequence[str]) -> Tuple[str, List[str]]:
	return feedback or NO_FEEDBACK, list(suggestions)


def word_count(count: int, minimum: Optional[int], maximum: Optional[int]) -> Optional[str]:
	if minimum is not None and count < minimum:
		return f"Your response has {count} words; at least {minimum} are required."
	if maximum is not None and count > maximum:
		return f"Your response has {count} words; no more than {maximum} are allowed."
	return None
