"""Answer tracking, completion gating and scoring for one attempt."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from comprehension_quiz.attempt import Attempt, ClozeKey, RenderedQuestion, VocabItem, VocabKey

_log = logging.getLogger("comprehension_quiz.session")


class SessionState(enum.Enum):
    LOCKED = "locked"
    ANSWERING = "answering"
    CHECKED = "checked"


class SessionStateError(RuntimeError):
    """An operation is not allowed in the session's current state."""


class UnknownItemError(KeyError):
    """An answer refers to a question, word or blank not in this attempt."""


class InvalidAnswerError(ValueError):
    """An answer is not one of the choices offered for its item."""


@dataclass(frozen=True)
class ScoreBreakdown:
    vocab: int = 0
    vocab_total: int = 0
    cloze: int = 0
    cloze_total: int = 0
    questions: int = 0
    questions_total: int = 0

    @property
    def score(self) -> int:
        return self.vocab + self.cloze + self.questions

    @property
    def total(self) -> int:
        return self.vocab_total + self.cloze_total + self.questions_total

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 0.0
        return self.score / self.total

    @property
    def percentage(self) -> int:
        return round(self.fraction * 100)

    @property
    def band(self) -> str:
        f = self.fraction
        if f >= 0.8:
            return "high"
        if f >= 0.5:
            return "medium"
        return "low"

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "total": self.total,
            "percentage": self.percentage,
            "band": self.band,
            "vocab": {"score": self.vocab, "total": self.vocab_total},
            "cloze": {"score": self.cloze, "total": self.cloze_total},
            "questions": {"score": self.questions, "total": self.questions_total},
        }


def cloze_matches(typed: str, word: str) -> bool:
    return typed.strip().casefold() == word.casefold()


@dataclass
class QuizSession:
    """Mutable answer state over one immutable Attempt.

    Answers are stored per item key, so answering the same item again
    overwrites the earlier value; counts are derived from distinct keys.
    A new attempt always gets a new QuizSession.
    """

    attempt: Attempt
    epoch: int = 0
    state: SessionState = SessionState.LOCKED
    question_answers: dict[int, str] = field(default_factory=dict)
    vocab_choices: dict[VocabKey, str] = field(default_factory=dict)
    cloze_answers: dict[ClozeKey, str] = field(default_factory=dict)
    scores: ScoreBreakdown | None = None

    def __post_init__(self):
        self._questions = {q.index: q for q in self.attempt.questions}
        self._vocab = {item.key: item for item in self.attempt.vocab_items}
        self._blanks = {b.key: b for b in self.attempt.cloze_blanks}

    # ── state transitions ──────────────────────────────────────────────

    def unlock(self) -> None:
        if self.state is not SessionState.LOCKED:
            raise SessionStateError(f"Cannot unlock a session in state {self.state.value}")
        self.state = SessionState.ANSWERING
        _log.info("Session %d unlocked", self.epoch)

    def _require_answering(self) -> None:
        if self.state is SessionState.LOCKED:
            raise SessionStateError("Session is locked")
        if self.state is SessionState.CHECKED:
            raise SessionStateError("Answers are locked after checking the score")

    # ── answer events ──────────────────────────────────────────────────

    def answer_question(self, index: int, option: str) -> None:
        self._require_answering()
        rq = self._questions.get(index)
        if rq is None:
            raise UnknownItemError(index)
        if option not in rq.options:
            raise InvalidAnswerError(f"{option!r} is not an option for question {index}")
        self.question_answers[index] = option

    def choose_definition(self, section_id: int, word: str, definition: str) -> None:
        self._require_answering()
        key = VocabKey(section_id, word)
        item = self._vocab.get(key)
        if item is None:
            raise UnknownItemError(key)
        if definition not in item.choices:
            raise InvalidAnswerError(f"{definition!r} is not a choice for {word!r}")
        self.vocab_choices[key] = definition

    def fill_blank(self, section_id: int, blank_index: int, text: str) -> None:
        self._require_answering()
        key = ClozeKey(section_id, blank_index)
        if key not in self._blanks:
            raise UnknownItemError(key)
        if not isinstance(text, str):
            raise InvalidAnswerError(f"Blank text must be a string, got {type(text).__name__}")
        self.cloze_answers[key] = text

    # ── progress ───────────────────────────────────────────────────────

    @property
    def answered_questions(self) -> int:
        return len(self.question_answers)

    @property
    def answered_vocabulary(self) -> int:
        return len(self.vocab_choices)

    @property
    def filled_blanks(self) -> int:
        return sum(1 for text in self.cloze_answers.values() if text.strip())

    def is_complete(self) -> bool:
        return (
            self.answered_questions == len(self._questions)
            and self.answered_vocabulary == len(self._vocab)
            and self.filled_blanks == len(self._blanks)
        )

    def progress(self) -> dict:
        return {
            "questions": {"answered": self.answered_questions, "total": len(self._questions)},
            "vocab": {"answered": self.answered_vocabulary, "total": len(self._vocab)},
            "cloze": {"answered": self.filled_blanks, "total": len(self._blanks)},
            "complete": self.is_complete(),
        }

    # ── scoring ────────────────────────────────────────────────────────

    def _question_correct(self, rq: RenderedQuestion) -> bool:
        answer = self.question_answers.get(rq.index)
        return answer is not None and rq.question.has_correct_option and answer == rq.question.correct_option

    def _vocab_correct(self, item: VocabItem) -> bool:
        return self.vocab_choices.get(item.key) == item.definition

    def _blank_correct(self, key: ClozeKey) -> bool:
        return cloze_matches(self.cloze_answers.get(key, ""), self._blanks[key].word)

    def check(self) -> ScoreBreakdown:
        """Freeze answers and compute the combined score."""
        self._require_answering()
        if not self.is_complete():
            raise SessionStateError("Every question, word and blank needs an answer first")

        self.scores = ScoreBreakdown(
            vocab=sum(self._vocab_correct(i) for i in self._vocab.values()),
            vocab_total=len(self._vocab),
            cloze=sum(self._blank_correct(k) for k in self._blanks),
            cloze_total=len(self._blanks),
            questions=sum(self._question_correct(q) for q in self._questions.values()),
            questions_total=len(self._questions),
        )
        self.state = SessionState.CHECKED
        _log.info("Session %d checked: %d/%d", self.epoch, self.scores.score, self.scores.total)
        return self.scores

    def feedback(self) -> dict:
        """Per-item correctness, available once the session is checked."""
        if self.state is not SessionState.CHECKED:
            raise SessionStateError("Feedback is only available after checking the score")
        return {
            "questions": [
                {
                    "index": rq.index,
                    "answer": self.question_answers.get(rq.index),
                    "correct_option": rq.question.correct_option,
                    "correct": self._question_correct(rq),
                    "explanation": rq.question.explanation,
                }
                for rq in self._questions.values()
            ],
            "vocab": [
                {
                    "section_id": item.key.section_id,
                    "word": item.key.word,
                    "choice": self.vocab_choices.get(item.key),
                    "definition": item.definition,
                    "correct": self._vocab_correct(item),
                }
                for item in self._vocab.values()
            ],
            "cloze": [
                {
                    "section_id": key.section_id,
                    "blank_index": key.blank_index,
                    "answer": self.cloze_answers.get(key, ""),
                    "word": blank.word,
                    "correct": self._blank_correct(key),
                }
                for key, blank in self._blanks.items()
            ],
        }
