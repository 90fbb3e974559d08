"""
Sentence-aware text chunking with soft word overlap.
"""
import math
import re
from typing import Iterator, List

MIN_CHUNK_CHARS = 50

# A run of non-terminal characters closed by terminal punctuation, or the
# unterminated tail of the text.
_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+\s?|$)")


def split_sentences(text: str) -> List[str]:
    sentences = [s.strip() for s in _SENTENCE_RE.findall(text)]
    return [s for s in sentences if s]


def _pack_words(words: List[str], max_size: int) -> List[str]:
    """Greedy word packer; no piece exceeds max_size."""
    pieces = []
    current = ""
    for word in words:
        # A single word longer than the limit is hard-split
        while len(word) > max_size:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(word[:max_size])
            word = word[max_size:]
        if not word:
            continue
        candidate = f"{current} {word}" if current else word
        if len(candidate) > max_size:
            pieces.append(current)
            current = word
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def _raw_chunks(text: str, max_size: int, overlap: int) -> Iterator[str]:
    overlap_words = math.ceil(overlap / 10)
    current = ""

    for sentence in split_sentences(text):
        if len(sentence) > max_size:
            if current:
                yield current
            pieces = _pack_words(sentence.split(), max_size)
            yield from pieces[:-1]
            current = pieces[-1] if pieces else ""
            continue

        candidate = f"{current} {sentence}" if current else sentence
        if len(candidate) <= max_size:
            current = candidate
            continue

        yield current
        tail = current.split()[-overlap_words:] if overlap_words else []
        seeded = " ".join(tail + [sentence])
        current = seeded if len(seeded) <= max_size else sentence

    if current.strip():
        yield current.strip()


def chunk_text(text: str, max_size: int = 1000, overlap: int = 200) -> Iterator[str]:
    """
    Split text into overlapping, size-bounded chunks.

    Sentences are packed greedily up to ``max_size`` characters. Each new chunk
    is seeded with roughly ``overlap / 10`` trailing words of the previous one.
    Chunks under ``MIN_CHUNK_CHARS`` are dropped, unless that would drop
    everything, in which case the whole trimmed text is yielded once.
    """
    stripped = text.strip() if text else ""
    if not stripped:
        return

    produced = False
    for chunk in _raw_chunks(stripped, max_size, overlap):
        chunk = chunk.strip()
        if len(chunk) >= MIN_CHUNK_CHARS:
            produced = True
            yield chunk

    if not produced:
        yield stripped
