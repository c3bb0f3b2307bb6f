# ABOUTME: Splits paragraph text into short speakable chunks (5-9 words) at natural pauses
# ABOUTME: Deterministic: same input always yields the same chunks, rejoining to the input
from __future__ import annotations

import re

from sentence_splitter import normalize_whitespace, split_sentences

MIN_CHUNK_WORDS = 5
IDEAL_CHUNK_WORDS = 7
MAX_CHUNK_WORDS = 9  # Hard ceiling before forcing a split

PAUSE_PUNCTUATION = (",", ";", ":", "—", "–", ".", "!", "?")

# Words that open a new clause
CLAUSE_BOUNDARY_WORDS = frozenset({
    # Coordinating conjunctions
    "and", "or", "but", "so", "yet", "for", "nor",
    # Subordinating conjunctions
    "because", "although", "while", "when", "if", "since", "until", "unless",
    "after", "before", "once", "whereas", "wherever", "whether",
    # Conjunctive adverbs
    "however", "therefore", "moreover", "furthermore", "nevertheless",
    "meanwhile", "otherwise", "consequently", "instead", "thus",
    # Relative pronouns
    "which", "that", "who", "whom", "whose", "where",
})

# Articles, demonstratives, pronouns, positional adverbs
IDEA_STARTERS = frozenset({
    "the", "a", "an", "this", "that", "these", "those",
    "he", "she", "it", "they", "we", "i", "you",
    "there", "here", "now", "then",
})

NON_WORD = re.compile(r"[^\w]")


def _bare(word: str) -> str:
    return NON_WORD.sub("", word.lower())


def _should_close(count: int, word: str, next_word: str | None) -> bool:
    """First matching rule wins: last word, hard cap, ideal pause, clause pause."""
    if next_word is None:
        return True
    if count >= MAX_CHUNK_WORDS:
        return True

    pause = word.endswith(PAUSE_PUNCTUATION)
    if count >= IDEAL_CHUNK_WORDS and pause:
        return True
    if count >= MIN_CHUNK_WORDS and pause:
        bare = _bare(next_word)
        return bare in CLAUSE_BOUNDARY_WORDS or bare in IDEA_STARTERS
    return False


def _chunk_sentence(sentence: str) -> list[str]:
    words = sentence.split()
    if len(words) <= MAX_CHUNK_WORDS:
        return [sentence.strip()]

    chunks: list[str] = []
    current: list[str] = []

    for i, word in enumerate(words):
        current.append(word)
        next_word = words[i + 1] if i + 1 < len(words) else None
        if _should_close(len(current), word, next_word):
            chunks.append(" ".join(current))
            current = []

    # Trailing fragment: fold into the previous chunk rather than emit a runt
    if current:
        fragment = " ".join(current)
        if chunks and len(current) < MIN_CHUNK_WORDS:
            chunks[-1] = f"{chunks[-1]} {fragment}"
        else:
            chunks.append(fragment)

    return chunks


def split_into_chunks(paragraph: str) -> list[str]:
    """Split a paragraph into ordered speakable chunks."""
    if not paragraph or not paragraph.strip():
        return []

    text = normalize_whitespace(paragraph)
    chunks: list[str] = []
    for sentence in split_sentences(text, normalize_ellipses=False):
        chunks.extend(_chunk_sentence(sentence))

    return [c for c in chunks if c.strip()]


def reconstruct(chunks: list[str]) -> str:
    """Rejoin chunks with single spaces, whitespace-normalized."""
    return normalize_whitespace(" ".join(chunks))


def validate_chunks(original: str, chunks: list[str]) -> bool:
    """True when the chunks rebuild the whitespace-normalized original exactly."""
    return reconstruct(chunks) == normalize_whitespace(original)
