"""Assemble parsed blocks into an ordered, immutable Document.

Question groups are tied to the nearest preceding text or instructions
section when they directly follow it (or follow another group already tied
to it); otherwise they are global and render standalone.
"""
from __future__ import annotations

import logging
import random
from collections import Counter
from pathlib import Path

from comprehension_quiz.models import (
    AudioSection,
    ClozeSection,
    Document,
    InstructionsSection,
    QuestionGroup,
    Section,
    SectionKind,
    TextSection,
    VocabularySection,
)
from comprehension_quiz.parsers.grammar import HeaderInfo, RawBlock, classify_header, split_document
from comprehension_quiz.parsers.section_parsers import (
    parse_audio,
    parse_cloze,
    parse_instructions,
    parse_questions,
    parse_text,
    parse_vocabulary,
)

_log = logging.getLogger("comprehension_quiz.parser")

_ANCHOR_KINDS = {SectionKind.TEXT, SectionKind.INSTRUCTIONS}


def _build_text(sid, info, block, rng, anchor):
    return TextSection(sid, parse_text(block.body), is_listening_only=info.listening)


def _build_instructions(sid, info, block, rng, anchor):
    heading, body = parse_instructions(block.body)
    return InstructionsSection(sid, heading, body)


def _build_vocabulary(sid, info, block, rng, anchor):
    return VocabularySection(sid, parse_vocabulary(block.body), capacity=info.capacity)


def _build_cloze(sid, info, block, rng, anchor):
    words = parse_cloze(block.body, info.capacity, rng)
    return ClozeSection(sid, block.body, tuple(words), capacity=info.capacity)


def _build_questions(sid, info, block, rng, anchor):
    return QuestionGroup(sid, anchor, tuple(parse_questions(block.body)), capacity=info.capacity)


def _build_audio(sid, info, block, rng, anchor):
    return AudioSection(sid, parse_audio(block.body))


_BUILDERS = {
    SectionKind.TEXT: _build_text,
    SectionKind.INSTRUCTIONS: _build_instructions,
    SectionKind.VOCABULARY: _build_vocabulary,
    SectionKind.CLOZE: _build_cloze,
    SectionKind.QUESTIONS: _build_questions,
    SectionKind.AUDIO: _build_audio,
}
assert set(_BUILDERS) == set(SectionKind), "every section kind needs a builder"


def build_document(
    title: str,
    blocks: list[RawBlock],
    rng: random.Random | None = None,
) -> Document:
    rng = rng or random.Random()
    sections: list[Section] = []
    last_kind: SectionKind | None = None
    last_tied = False
    anchor_id: int | None = None

    for block in blocks:
        info: HeaderInfo | None = classify_header(block.header)
        if info is None:
            _log.debug("Dropping block with unrecognized header %r", block.header)
            last_kind = None
            last_tied = False
            continue

        sid = len(sections)
        attach_to = None
        if info.kind is SectionKind.QUESTIONS:
            if last_kind in _ANCHOR_KINDS or (last_kind is SectionKind.QUESTIONS and last_tied):
                attach_to = anchor_id

        section = _BUILDERS[info.kind](sid, info, block, rng, attach_to)
        sections.append(section)

        if info.kind in _ANCHOR_KINDS:
            anchor_id = sid
        last_tied = info.kind is SectionKind.QUESTIONS and attach_to is not None
        last_kind = info.kind

    doc = Document(title=title, ordered_sections=tuple(sections))
    counts = Counter(s.kind.value for s in doc.ordered_sections)
    _log.info("Parsed %r: %d sections %s", title, len(sections), dict(counts))
    return doc


def parse_document(text: str | None, rng: random.Random | None = None) -> Document:
    """Parse raw authored quiz text into a Document."""
    title, blocks = split_document(text)
    return build_document(title, blocks, rng)


def parse_document_file(path: Path, rng: random.Random | None = None) -> Document:
    return parse_document(path.read_text(encoding="utf-8"), rng)
