from __future__ import annotations

from pte_eval.engine.sequence import score_order


def test_swapped_opening_pair_keeps_later_pair():
    outcome = score_order(["B", "A", "C", "D"], ["A", "B", "C", "D"])
    assert outcome.correct_pairs == 1
    assert outcome.max_pairs == 3


def test_shifted_but_coherent_block_earns_credit():
    outcome = score_order(["C", "D", "A", "B"], ["A", "B", "C", "D"])
    assert outcome.correct_pairs == 2


def test_exact_order_scores_every_pair():
    outcome = score_order([1, 2, 3], [1, 2, 3])
    assert outcome.correct_pairs == outcome.max_pairs == 2


def test_unknown_ids_and_short_sequences():
    assert score_order(["X", "A", "B"], ["A", "B"]).correct_pairs == 1
    assert score_order([], ["A"]).max_pairs == 0
    assert score_order(["A"], []).correct_pairs == 0
