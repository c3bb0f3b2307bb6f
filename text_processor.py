# ABOUTME: Splits pasted input text into paragraph units for per-paragraph processing
# ABOUTME: Enforces input size and paragraph count limits; assigns each paragraph a UUID
from __future__ import annotations

import re
import uuid
from dataclasses import asdict, dataclass

MAX_PARAGRAPHS = 50
MAX_CHARACTERS = 10_000
SHORT_LINE_CHARS = 100  # Lines shorter than this join the paragraph in progress

BLANK_LINES = re.compile(r"\n\n+")


class TextProcessingError(ValueError):
    """Input text cannot be segmented into paragraphs."""


class EmptyText(TextProcessingError):
    pass


class TextTooLong(TextProcessingError):
    pass


@dataclass(frozen=True)
class Paragraph:
    id: str
    text: str
    index: int  # 0-based
    total: int

    def to_dict(self) -> dict:
        return asdict(self)


def _group_lines(lines: list[str]) -> list[str]:
    """Join short lines onto the open paragraph; long lines start a new one."""
    paragraphs: list[str] = []
    current = ""

    for line in lines:
        if len(line) < SHORT_LINE_CHARS and current:
            current += " " + line
        else:
            if current:
                paragraphs.append(current.strip())
            current = line

    if current:
        paragraphs.append(current.strip())

    return paragraphs


def process_text(text: str) -> list[Paragraph]:
    """Split raw text into at most MAX_PARAGRAPHS paragraphs."""
    if not text or not text.strip():
        raise EmptyText("Text cannot be empty")
    if len(text) > MAX_CHARACTERS:
        raise TextTooLong(f"Text exceeds maximum length of {MAX_CHARACTERS} characters")

    if "\n\n" in text:
        parts = [p.strip() for p in BLANK_LINES.split(text)]
        parts = [p for p in parts if p]
    elif "\n" in text:
        lines = [line.strip() for line in text.split("\n")]
        parts = _group_lines([line for line in lines if line])
    else:
        parts = [text.strip()]

    parts = parts[:MAX_PARAGRAPHS]
    return [
        Paragraph(id=uuid.uuid4().hex, text=part, index=i, total=len(parts))
        for i, part in enumerate(parts)
    ]
