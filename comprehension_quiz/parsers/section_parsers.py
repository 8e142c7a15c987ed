"""Per-type parsers turning a raw block body into section content.

Every parser treats an empty or missing body as a no-op and never raises.
"""
from __future__ import annotations

import logging
import random
import re

from comprehension_quiz.attempt import fisher_yates
from comprehension_quiz.models import Question

_log = logging.getLogger("comprehension_quiz.parser")

CORRECT_MARKER = "[correct]"

_CLOZE_RE = re.compile(r"\*([^*]+)\*")
_AUDIO_RE = re.compile(r"audio-src\s*=\s*(.+)")


def _parse_pair(raw: str) -> tuple[str, str] | None:
    word, sep, definition = raw.partition(":")
    if not sep:
        return None
    word = word.strip()
    definition = definition.strip().rstrip(",").strip()
    if not word or not definition:
        return None
    return word, definition


def parse_vocabulary(body: str | None) -> dict[str, str]:
    """Parse ``word: definition`` pairs.

    One pair per line is preferred.  When that yields at most one entry and
    the block contains a comma, the legacy single-line format
    (``a: 1, b: 2``) is assumed and the block is re-split on commas.
    Later duplicates overwrite earlier ones.
    """
    if not body:
        return {}

    entries: dict[str, str] = {}
    for line in body.splitlines():
        if not line.strip():
            continue
        pair = _parse_pair(line)
        if pair is None:
            _log.debug("Skipping vocabulary line without a pair: %r", line)
            continue
        entries[pair[0]] = pair[1]

    if len(entries) <= 1 and "," in body:
        entries = {}
        for raw in body.split(","):
            pair = _parse_pair(raw)
            if pair:
                entries[pair[0]] = pair[1]

    return entries


def cloze_candidates(body: str | None) -> list[str]:
    if not body:
        return []
    return _CLOZE_RE.findall(body)


def parse_cloze(
    body: str | None,
    capacity: int | None = None,
    rng: random.Random | None = None,
) -> list[str]:
    """Return the blank words of a cloze body.

    When ``capacity`` is exceeded a random subset is chosen here, once, so
    the blanks stay fixed for the lifetime of the parsed document.
    """
    words = cloze_candidates(body)
    if capacity and len(words) > capacity:
        words = fisher_yates(words, rng or random.Random())[:capacity]
    return words


def parse_questions(body: str | None) -> list[Question]:
    """Parse a ``Q:`` / ``A:`` / ``E:`` block into the full question bank."""
    if not body:
        return []

    bank: list[Question] = []
    current: dict | None = None

    def flush():
        if current is None:
            return
        q = Question(
            prompt=current["prompt"],
            options=tuple(current["options"]),
            correct_option=current["correct"],
            explanation=current["explanation"],
        )
        if not q.has_correct_option:
            _log.warning("Question has no option marked %s: %r", CORRECT_MARKER, q.prompt)
        bank.append(q)

    for raw in body.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith("Q:") or line.startswith("Q."):
            flush()
            current = {
                "prompt": line[2:].strip(),
                "options": [],
                "correct": "",
                "explanation": None,
            }
        elif current is None:
            continue
        elif line.startswith("A:"):
            answer = line[2:].strip()
            option = answer.replace(CORRECT_MARKER, "", 1).strip()
            current["options"].append(option)
            if CORRECT_MARKER in answer:
                current["correct"] = option
        elif line.startswith("E:"):
            current["explanation"] = line[2:].strip()

    flush()
    return bank


def parse_instructions(body: str | None) -> tuple[str, str]:
    """Return ``(heading, body)``: the first non-blank line, then the rest."""
    if not body:
        return "", ""
    lines = body.splitlines()
    for i, line in enumerate(lines):
        if line.strip():
            return line.strip(), "\n".join(lines[i + 1:]).strip()
    return "", ""


def parse_audio(body: str | None) -> str | None:
    if not body:
        return None
    m = _AUDIO_RE.search(body)
    if not m:
        return None
    return m.group(1).strip() or None


def parse_text(body: str | None) -> str:
    return (body or "").strip()
