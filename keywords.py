# ABOUTME: Frequency-based keyword extraction with a stop-word list
# ABOUTME: Feeds the keyword search fallback when scene planning yields no visuals
from __future__ import annotations

import re
from collections import Counter

MAX_KEYWORDS = 5
MIN_KEYWORDS = 3

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from",
    "has", "he", "in", "is", "it", "its", "of", "on", "that", "the",
    "to", "was", "will", "with", "this", "but", "they", "have",
    "had", "what", "said", "each", "which", "their", "time", "if", "up",
    "out", "many", "then", "them", "these", "so", "some", "her", "would",
    "make", "like", "into", "him", "two", "more", "very", "after",
    "words", "long", "than", "first", "been", "call", "who", "oil", "sit",
    "now", "find", "down", "day", "did", "get", "come", "made", "may", "part",
})


def extract_keywords(text: str) -> list[str]:
    """Return up to 5 meaningful keywords, most frequent first."""
    cleaned = re.sub(r"[^\w\s]", " ", text.lower())
    words = [w for w in cleaned.split() if len(w) > 2]
    candidates = [w for w in words if w not in STOP_WORDS]

    # Counter.most_common keeps first-seen order for ties
    keywords = [word for word, _ in Counter(candidates).most_common(MAX_KEYWORDS)]

    if len(keywords) < MIN_KEYWORDS:
        for word in candidates:
            if len(keywords) >= MIN_KEYWORDS:
                break
            if word not in keywords:
                keywords.append(word)

    return keywords[:MAX_KEYWORDS]
