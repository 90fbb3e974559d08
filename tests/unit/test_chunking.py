"""Tests for the sentence-aware chunker."""

from __future__ import annotations

import inspect

from ragchat.chunking import MIN_CHUNK_CHARS, chunk_text, split_sentences


def _sentences(n: int) -> list[str]:
    return [f"Sentence number {i:02d} talks about retrieval pipelines." for i in range(n)]


# ------------------------------------------------------------------
# Sentence splitting
# ------------------------------------------------------------------


def test_split_sentences_on_terminal_punctuation():
    assert split_sentences("One. Two! Three? ") == ["One.", "Two!", "Three?"]


def test_split_sentences_keeps_unterminated_tail():
    assert split_sentences("First sentence. trailing words") == ["First sentence.", "trailing words"]


# ------------------------------------------------------------------
# chunk_text
# ------------------------------------------------------------------


def test_chunk_text_is_a_generator():
    assert inspect.isgenerator(chunk_text("Some text."))


def test_empty_and_blank_text_yield_nothing():
    assert list(chunk_text("")) == []
    assert list(chunk_text("   \n ")) == []


def test_short_text_returned_whole():
    assert list(chunk_text("  Too short to matter.  ")) == ["Too short to matter."]


def test_punctuation_only_text_returned_whole():
    assert list(chunk_text("?!...")) == ["?!..."]


def test_text_under_limit_is_single_chunk():
    text = " ".join(_sentences(5))
    assert list(chunk_text(text)) == [text]


def test_1200_chars_split_into_bounded_chunks():
    parts = []
    i = 0
    while len(" ".join(parts)) < 1200:
        parts.append(_sentences(i + 1)[i])
        i += 1
    text = " ".join(parts)

    chunks = list(chunk_text(text, max_size=1000))

    assert len(chunks) >= 2
    for chunk in chunks:
        assert MIN_CHUNK_CHARS <= len(chunk) <= 1000


def test_next_chunk_seeded_with_tail_words():
    s1 = "Alpha beta gamma delta epsilon zeta eta theta iota kappa."
    s2 = "Lambda mu nu xi omicron pi rho sigma tau upsilon phi chi."
    chunks = list(chunk_text(f"{s1} {s2}", max_size=100, overlap=20))

    assert chunks[0] == s1
    assert chunks[1] == f"iota kappa. {s2}"


def test_zero_overlap_has_no_seed():
    s1 = "Alpha beta gamma delta epsilon zeta eta theta iota kappa."
    s2 = "Lambda mu nu xi omicron pi rho sigma tau upsilon phi chi."
    chunks = list(chunk_text(f"{s1} {s2}", max_size=100, overlap=0))
    assert chunks == [s1, s2]


def test_overlong_sentence_is_word_packed_within_limit():
    text = " ".join(f"word{i:03d}" for i in range(100)) + "."
    chunks = list(chunk_text(text, max_size=100, overlap=20))

    assert len(chunks) > 1
    assert all(len(c) <= 100 for c in chunks)
    assert chunks[0].startswith("word000")


def test_overlong_sentence_after_buffer_flushes_buffer_first():
    intro = "This opening sentence is comfortably longer than fifty chars."
    long_sentence = " ".join(f"token{i:03d}" for i in range(60)) + "."
    chunks = list(chunk_text(f"{intro} {long_sentence}", max_size=120, overlap=20))

    assert chunks[0] == intro
    assert all(len(c) <= 120 for c in chunks)


def test_single_giant_word_is_hard_split():
    chunks = list(chunk_text("x" * 250, max_size=100))
    assert chunks == ["x" * 100, "x" * 100, "x" * 50]


def test_small_fragments_are_dropped():
    big = " ".join(_sentences(18))
    assert len(big) <= 940 < len(big) + len(" Tiny.")
    chunks = list(chunk_text(f"{big} Tiny.", max_size=940, overlap=0))
    assert chunks == [big]


def test_sentence_order_is_preserved():
    sentences = _sentences(60)
    chunks = list(chunk_text(" ".join(sentences), max_size=300, overlap=50))

    positions = []
    for sentence in sentences:
        first = next(i for i, c in enumerate(chunks) if sentence in c)
        positions.append(first)
    assert positions == sorted(positions)
