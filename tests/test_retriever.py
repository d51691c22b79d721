"""Tests for keyword retrieval."""

from tax_gpt.assistant import Retriever, find_relevant
from tax_gpt.assistant.retriever import query_keywords, score_chunk

STANDARD = "The standard deduction for single filers is listed here."
FILING = "Filing status rules for married couples."


def test_full_query_match_outscores_unrelated_chunk():
    assert score_chunk(STANDARD, "standard deduction") - score_chunk(FILING, "standard deduction") >= 10


def test_score_components():
    # full query + two keywords
    assert score_chunk(STANDARD, "Standard Deduction") == 14
    # keywords only, no full query match
    assert score_chunk("deduction ... standard", "standard deduction") == 4
    assert score_chunk(FILING, "standard deduction") == 0


def test_reference_markers_are_case_sensitive():
    assert score_chunk("See Table 2-1", "nothing") == 1
    assert score_chunk("see table 2-1", "nothing") == 0
    assert score_chunk("Limit is $1,000", "nothing") == 1


def test_short_words_are_not_keywords():
    assert query_keywords("Is the tax due") == []
    # "tax" only counts through the full query match
    assert score_chunk("tax", "tax") == 10


def test_find_relevant_orders_by_score_and_caps_count():
    chunks = [FILING, "Table only", STANDARD, "standard form", "nothing at all"]
    retriever = Retriever(chunks)

    result = retriever.find_relevant("standard deduction", max_chunks=3)

    assert result == [STANDARD, "standard form", "Table only"]
    scores = [score_chunk(c, "standard deduction") for c in result]
    assert scores == sorted(scores, reverse=True)


def test_ties_keep_document_order():
    chunks = ["alpha", "beta", "gamma", "delta"]

    assert find_relevant(chunks, "zzzz", max_chunks=3) == ["alpha", "beta", "gamma"]


def test_zero_scores_fill_remaining_slots():
    chunks = ["nothing", "standard deduction table", "other"]

    result = find_relevant(chunks, "standard deduction", max_chunks=3)

    assert result[0] == "standard deduction table"
    assert set(result) == set(chunks)


def test_max_chunks_bounds():
    chunks = ["a", "b"]

    assert find_relevant(chunks, "query", max_chunks=0) == []
    assert find_relevant(chunks, "query", max_chunks=10) == chunks
    assert find_relevant([], "query") == []


def test_rank_reports_positions():
    ranked = Retriever(["x", "standard"]).rank("standard")

    assert [(item.position, item.score) for item in ranked] == [(1, 12), (0, 0)]
