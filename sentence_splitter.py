# ABOUTME: Deterministic sentence boundary detection for whitespace-normalized prose
# ABOUTME: Handles abbreviations, decimal numbers, closing quotes, and ellipses
from __future__ import annotations

import re
import string

TERMINATORS = ".!?"
QUOTES = "\"'”’"
ELLIPSIS_GLYPH = "…"

WHITESPACE = re.compile(r"\s+")
ELLIPSIS = re.compile(r"\.{3,}")
WORD_CHARS = frozenset(string.ascii_letters + ".")

ABBREVIATIONS = frozenset({
    # Titles
    "mr", "mrs", "ms", "dr", "prof", "sr", "jr", "st",
    # Organisations and addresses
    "inc", "ltd", "co", "corp", "ave", "blvd", "rd", "u.s", "u.s.a",
    # Latin
    "etc", "vs", "e.g", "i.e", "al", "cf", "ca", "viz",
    # Time, units, references
    "a.m", "p.m", "am", "pm", "no", "vol", "pp", "ed", "est", "approx",
    "min", "max", "fig", "ref", "ex",
})
MAX_ABBREVIATION_LEN = max(len(a) for a in ABBREVIATIONS)


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return WHITESPACE.sub(" ", text).strip()


def _is_abbreviation(text: str, period_pos: int) -> bool:
    """Look back over letters and inner periods (e.g. "e.g", "u.s.a") before a period."""
    start = period_pos
    while start > 0 and period_pos - start <= MAX_ABBREVIATION_LEN and text[start - 1] in WORD_CHARS:
        start -= 1
    # Run longer than any abbreviation
    if start > 0 and text[start - 1] in WORD_CHARS:
        return False
    return text[start:period_pos].strip(".").lower() in ABBREVIATIONS


def _ends_sentence(text: str, pos: int) -> bool:
    """Decide whether the terminator at ``pos`` closes a sentence."""
    nxt = text[pos + 1] if pos + 1 < len(text) else ""
    after = text[pos + 2] if pos + 2 < len(text) else ""

    if pos == len(text) - 1:
        return True
    if nxt == " " and after.isupper():
        return True
    return nxt == "\n"


def split_sentences(text: str, normalize_ellipses: bool = True) -> list[str]:
    """Split text into trimmed sentences.

    Ellipses (three or more periods) never terminate a sentence. With
    ``normalize_ellipses`` they are emitted as a single ellipsis glyph;
    without it the original periods are kept so callers can rebuild the
    input verbatim.
    """
    if not text or not text.strip():
        return []

    text = normalize_whitespace(text)
    if normalize_ellipses:
        text = ELLIPSIS.sub(ELLIPSIS_GLYPH, text)

    sentences: list[str] = []
    start = 0
    i = 0
    n = len(text)

    while i < n:
        char = text[i]
        if char not in TERMINATORS:
            i += 1
            continue

        if char == ".":
            run_end = i
            while run_end < n and text[run_end] == ".":
                run_end += 1
            if run_end - i >= 3:
                i = run_end
                continue

        nxt = text[i + 1] if i + 1 < n else ""

        # Decimal number
        if nxt.isdigit():
            i += 1
            continue

        # Terminator inside a closing quote: the quote belongs to this sentence.
        # With no space before the next capital (."He) the split cannot be rejoined verbatim.
        if nxt and nxt in QUOTES:
            after = text[i + 2] if i + 2 < n else ""
            following = text[i + 3] if i + 3 < n else ""
            if (after == " " and following.isupper()) or after.isupper():
                sentences.append(text[start:i + 2])
                start = i + 2
                i += 2
            else:
                i += 1
            continue

        if char == "." and _is_abbreviation(text, i):
            i += 1
            continue

        if _ends_sentence(text, i):
            sentences.append(text[start:i + 1])
            start = i + 1

        i += 1

    if start < n:
        sentences.append(text[start:])

    return [s.strip() for s in sentences if s.strip()]
