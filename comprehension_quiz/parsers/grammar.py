"""Split authored quiz text into a title and labeled raw blocks.

Sections are separated by the literal ``---``.  The first chunk holds the
title on its first non-blank line; every later chunk starts with a header
line such as ``vocab-5``, ``text-listening`` or ``questions``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from comprehension_quiz.models import SectionKind

DELIMITER = "---"

# Headers matched by prefix; an optional "-N" suffix sets the capacity.
_PREFIX_KINDS = (
    ("vocab", SectionKind.VOCABULARY),
    ("cloze", SectionKind.CLOZE),
    ("instructions", SectionKind.INSTRUCTIONS),
    ("questions", SectionKind.QUESTIONS),
)
_CAPACITY_KINDS = {SectionKind.VOCABULARY, SectionKind.CLOZE, SectionKind.QUESTIONS}

# Headers matched exactly.
_EXACT_KINDS = {
    "text": (SectionKind.TEXT, False),
    "text-listening": (SectionKind.TEXT, True),
    "audio": (SectionKind.AUDIO, False),
}


@dataclass(frozen=True)
class HeaderInfo:
    kind: SectionKind
    capacity: int | None = None
    listening: bool = False


@dataclass(frozen=True)
class RawBlock:
    header: str
    body: str


def classify_header(header: str) -> HeaderInfo | None:
    """Map a header line to its section kind, or None when unrecognized."""
    h = header.strip().lower()
    if h in _EXACT_KINDS:
        kind, listening = _EXACT_KINDS[h]
        return HeaderInfo(kind=kind, listening=listening)
    for prefix, kind in _PREFIX_KINDS:
        if h.startswith(prefix):
            capacity = _parse_capacity(h, prefix) if kind in _CAPACITY_KINDS else None
            return HeaderInfo(kind=kind, capacity=capacity)
    return None


def _parse_capacity(header: str, prefix: str) -> int | None:
    m = re.match(rf"{prefix}-(\d+)", header)
    if not m:
        return None
    n = int(m.group(1))
    # A zero count means "use every item"
    return n or None


def split_document(text: str | None) -> tuple[str, list[RawBlock]]:
    """Return ``(title, blocks)`` for raw authored text.

    Body line breaks (including blank lines, which separate paragraphs in
    passages and cloze text) are preserved; only the ends are trimmed.
    Chunks with no non-blank line are skipped.
    """
    if not text:
        return "", []

    chunks = text.split(DELIMITER)
    title = ""
    for line in chunks[0].splitlines():
        if line.strip():
            title = line.strip()
            break

    blocks: list[RawBlock] = []
    for chunk in chunks[1:]:
        lines = chunk.splitlines()
        header_idx = next((i for i, line in enumerate(lines) if line.strip()), None)
        if header_idx is None:
            continue
        header = lines[header_idx].strip()
        body = "\n".join(lines[header_idx + 1:]).strip()
        blocks.append(RawBlock(header=header, body=body))

    return title, blocks
