"""Derive one randomized attempt from a parsed Document.

An attempt is regenerated on every session start and every reset: capped
vocabulary and question sections draw a fresh random subset, each question
gets its own option order and every vocabulary word gets a shuffled set of
definition choices.  The Document itself is never mutated.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import NamedTuple, Sequence, TypeVar

from comprehension_quiz.models import (
    ClozeSection,
    Document,
    Question,
    QuestionGroup,
    VocabularySection,
)

_log = logging.getLogger("comprehension_quiz.attempt")

T = TypeVar("T")

VOCAB_DISTRACTORS = 3


def fisher_yates(items: Sequence[T], rng: random.Random) -> list[T]:
    """Return a uniformly shuffled copy of *items*."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def take_random(items: Sequence[T], capacity: int | None, rng: random.Random) -> list[T]:
    """First ``capacity`` items of a random permutation; all items, in order, if uncapped."""
    if capacity is None or capacity >= len(items):
        return list(items)
    return fisher_yates(items, rng)[:capacity]


class VocabKey(NamedTuple):
    section_id: int
    word: str


class ClozeKey(NamedTuple):
    section_id: int
    blank_index: int


@dataclass(frozen=True)
class RenderedQuestion:
    index: int  # global position within the attempt
    group_id: int
    question: Question
    options: tuple[str, ...]  # shuffled for this attempt only


@dataclass(frozen=True)
class AttemptQuestionGroup:
    group: QuestionGroup
    questions: tuple[RenderedQuestion, ...]


@dataclass(frozen=True)
class VocabItem:
    key: VocabKey
    definition: str
    choices: tuple[str, ...]


@dataclass(frozen=True)
class AttemptVocabulary:
    section: VocabularySection
    items: tuple[VocabItem, ...]


@dataclass(frozen=True)
class ClozeBlank:
    key: ClozeKey
    word: str


@dataclass(frozen=True)
class AttemptCloze:
    section: ClozeSection
    blanks: tuple[ClozeBlank, ...]


@dataclass(frozen=True)
class Attempt:
    document: Document
    question_groups: tuple[AttemptQuestionGroup, ...]
    vocabulary: tuple[AttemptVocabulary, ...]
    cloze: tuple[AttemptCloze, ...]

    @property
    def questions(self) -> list[RenderedQuestion]:
        return [q for g in self.question_groups for q in g.questions]

    @property
    def vocab_items(self) -> list[VocabItem]:
        return [item for v in self.vocabulary for item in v.items]

    @property
    def cloze_blanks(self) -> list[ClozeBlank]:
        return [b for c in self.cloze for b in c.blanks]


def vocabulary_choices(
    section: VocabularySection,
    word: str,
    rng: random.Random,
    distractors: int = VOCAB_DISTRACTORS,
) -> tuple[str, ...]:
    """Correct definition plus up to *distractors* distinct others, shuffled."""
    correct = section.entries[word]
    pool: list[str] = []
    for other in section.entries.values():
        if other != correct and other not in pool:
            pool.append(other)
    picked = fisher_yates(pool, rng)[:distractors]
    return tuple(fisher_yates([correct, *picked], rng))


def _sample_vocabulary(section: VocabularySection, rng: random.Random) -> AttemptVocabulary:
    words = take_random(list(section.entries), section.capacity, rng)
    items = tuple(
        VocabItem(
            key=VocabKey(section.section_id, w),
            definition=section.entries[w],
            choices=vocabulary_choices(section, w, rng),
        )
        for w in words
    )
    return AttemptVocabulary(section, items)


def _cloze_blanks(section: ClozeSection) -> AttemptCloze:
    blanks = tuple(
        ClozeBlank(ClozeKey(section.section_id, seg.blank_index), seg.text)
        for seg in section.segments()
        if seg.is_blank
    )
    return AttemptCloze(section, blanks)


def generate_attempt(document: Document, rng: random.Random | None = None) -> Attempt:
    rng = rng or random.Random()
    groups: list[AttemptQuestionGroup] = []
    vocab: list[AttemptVocabulary] = []
    cloze: list[AttemptCloze] = []
    next_index = 0

    for section in document.ordered_sections:
        if isinstance(section, QuestionGroup):
            rendered = []
            for q in take_random(section.bank, section.capacity, rng):
                rendered.append(RenderedQuestion(
                    index=next_index,
                    group_id=section.section_id,
                    question=q,
                    options=tuple(fisher_yates(q.options, rng)),
                ))
                next_index += 1
            groups.append(AttemptQuestionGroup(section, tuple(rendered)))
        elif isinstance(section, VocabularySection):
            vocab.append(_sample_vocabulary(section, rng))
        elif isinstance(section, ClozeSection):
            cloze.append(_cloze_blanks(section))

    attempt = Attempt(document, tuple(groups), tuple(vocab), tuple(cloze))
    _log.info(
        "Generated attempt: %d questions, %d vocabulary words, %d blanks",
        len(attempt.questions), len(attempt.vocab_items), len(attempt.cloze_blanks),
    )
    return attempt
