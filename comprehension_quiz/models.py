from __future__ import annotations

import enum
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, NamedTuple, Union

_CLOZE_TOKEN = "*"


class SectionKind(enum.Enum):
    TEXT = "text"
    INSTRUCTIONS = "instructions"
    VOCABULARY = "vocab"
    CLOZE = "cloze"
    QUESTIONS = "questions"
    AUDIO = "audio"


@dataclass(frozen=True)
class Question:
    prompt: str
    options: tuple[str, ...]
    correct_option: str  # "" when no option was marked [correct]
    explanation: str | None = None

    @property
    def has_correct_option(self) -> bool:
        return bool(self.correct_option) and self.correct_option in self.options


@dataclass(frozen=True)
class TextSection:
    section_id: int
    body: str
    is_listening_only: bool = False
    kind: SectionKind = field(default=SectionKind.TEXT, init=False)


@dataclass(frozen=True)
class InstructionsSection:
    section_id: int
    heading: str
    body: str
    kind: SectionKind = field(default=SectionKind.INSTRUCTIONS, init=False)


@dataclass(frozen=True)
class VocabularySection:
    section_id: int
    entries: Mapping[str, str]  # word -> definition, authored order
    capacity: int | None = None
    kind: SectionKind = field(default=SectionKind.VOCABULARY, init=False)

    def __post_init__(self):
        # read-only view over a private copy
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))


class ClozeSegment(NamedTuple):
    text: str
    blank_index: int | None = None  # None for plain text

    @property
    def is_blank(self) -> bool:
        return self.blank_index is not None


@dataclass(frozen=True)
class ClozeSection:
    section_id: int
    body: str  # asterisk markers retained
    blank_words: tuple[str, ...]
    capacity: int | None = None
    kind: SectionKind = field(default=SectionKind.CLOZE, init=False)

    def segments(self) -> list[ClozeSegment]:
        """Split the body into plain text and numbered blanks.

        A ``*token*`` becomes a blank while the selected ``blank_words``
        (taken as a multiset) still hold it; any other marked token is
        emitted as plain text with its asterisks removed.
        """
        remaining = Counter(self.blank_words)
        segments: list[ClozeSegment] = []
        buf: list[str] = []
        blank_index = 0
        pos = 0
        body = self.body
        while pos < len(body):
            start = body.find(_CLOZE_TOKEN, pos)
            if start < 0:
                break
            end = body.find(_CLOZE_TOKEN, start + 1)
            if end < 0:
                break
            word = body[start + 1:end]
            if not word:
                # "**" is not a token; keep the first asterisk and rescan
                buf.append(body[pos:start + 1])
                pos = start + 1
                continue
            buf.append(body[pos:start])
            if remaining[word] > 0:
                remaining[word] -= 1
                if buf:
                    segments.append(ClozeSegment("".join(buf)))
                    buf = []
                segments.append(ClozeSegment(word, blank_index))
                blank_index += 1
            else:
                buf.append(word)
            pos = end + 1
        buf.append(body[pos:])
        tail = "".join(buf)
        if tail:
            segments.append(ClozeSegment(tail))
        return [s for s in segments if s.is_blank or s.text]


@dataclass(frozen=True)
class QuestionGroup:
    section_id: int
    attached_section_id: int | None  # None = global group
    bank: tuple[Question, ...]
    capacity: int | None = None
    kind: SectionKind = field(default=SectionKind.QUESTIONS, init=False)

    @property
    def tied(self) -> bool:
        return self.attached_section_id is not None


@dataclass(frozen=True)
class AudioSection:
    section_id: int
    source_url: str | None = None
    kind: SectionKind = field(default=SectionKind.AUDIO, init=False)


Section = Union[
    TextSection,
    InstructionsSection,
    VocabularySection,
    ClozeSection,
    QuestionGroup,
    AudioSection,
]


@dataclass(frozen=True)
class Document:
    title: str
    ordered_sections: tuple[Section, ...] = ()

    def sections_of(self, kind: SectionKind) -> list[Section]:
        return [s for s in self.ordered_sections if s.kind is kind]

    @property
    def question_groups(self) -> list[QuestionGroup]:
        return self.sections_of(SectionKind.QUESTIONS)

    @property
    def vocabulary_sections(self) -> list[VocabularySection]:
        return self.sections_of(SectionKind.VOCABULARY)

    @property
    def cloze_sections(self) -> list[ClozeSection]:
        return self.sections_of(SectionKind.CLOZE)

    @property
    def audio_source(self) -> str | None:
        """Source URL of the last audio section that sets one."""
        src = None
        for s in self.sections_of(SectionKind.AUDIO):
            if s.source_url:
                src = s.source_url
        return src

    @property
    def passage_text(self) -> str:
        """All passage text, including listening-only passages, for narration."""
        return "\n\n".join(s.body for s in self.sections_of(SectionKind.TEXT) if s.body)

    def section(self, section_id: int) -> Section:
        return self.ordered_sections[section_id]
