from __future__ import annotations

from pte_eval.engine.tokenizer import count_words, normalize_word, normalized_words, tokenize


def test_tokens_keep_raw_and_normalize_for_comparison():
    tokens = tokenize("Hello, World! It's “fine”.")
    assert [t.raw for t in tokens] == ["Hello,", "World!", "It's", "“fine”."]
    assert [t.normalized for t in tokens] == ["hello", "world", "its", "fine"]
    assert [t.index for t in tokens] == [0, 1, 2, 3]


def test_apostrophes_and_single_quotes_are_stripped():
    assert normalize_word("Don't") == normalize_word("dont") == "dont"
    assert normalize_word("'hello'") == "hello"
    assert normalize_word("(well-known)") == "wellknown"


def test_punctuation_only_token_keeps_its_index():
    tokens = tokenize("fast - slow")
    assert len(tokens) == 3
    assert tokens[1].normalized == ""
    assert tokens[2].index == 2
    assert normalized_words("fast - slow") == ["fast", "slow"]


def test_whitespace_runs_and_empty_input():
    assert count_words("  one\ttwo \n three  ") == 3
    assert tokenize(None) == []
    assert tokenize("") == []


def test_retokenizing_joined_raw_values_is_stable():
    tokens = tokenize("  The  cat,\tsat on\nthe mat. ")
    again = tokenize(" ".join(t.raw for t in tokens))
    assert again == tokens
