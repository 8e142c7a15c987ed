"""Drive one quiz: attempt generation, answering, checking, submission, reset."""
from __future__ import annotations

import logging
import random

from comprehension_quiz.attempt import Attempt, generate_attempt
from comprehension_quiz.models import (
    AudioSection,
    ClozeSection,
    Document,
    InstructionsSection,
    QuestionGroup,
    TextSection,
    VocabularySection,
)
from comprehension_quiz.session import QuizSession, ScoreBreakdown, SessionState, SessionStateError
from comprehension_quiz.submission import (
    Respondent,
    ScorePayload,
    SubmissionCoordinator,
    SubmissionResult,
)
from comprehension_quiz.transports.base import SubmissionTransport

_log = logging.getLogger("comprehension_quiz.engine")


class AccessDeniedError(PermissionError):
    """The access code given to unlock the session is wrong."""


class QuizRunner:
    """Owns the immutable Document and the current, replaceable QuizSession.

    Every reset bumps the epoch and builds a brand-new attempt and session;
    nothing from the previous try is reused.
    """

    def __init__(
        self,
        document: Document,
        transport: SubmissionTransport,
        submission_url: str | None = None,
        access_code: str | None = None,
        auto_submit: bool = True,
        rng: random.Random | None = None,
    ):
        self.document = document
        self.rng = rng or random.Random()
        self.access_code = access_code or None
        self.auto_submit = auto_submit
        self.epoch = 0
        self.respondent: Respondent | None = None
        self.coordinator = SubmissionCoordinator(transport, submission_url, epoch=self.epoch)
        self.session = self._new_session()

    def _new_session(self) -> QuizSession:
        attempt = generate_attempt(self.document, self.rng)
        return QuizSession(attempt=attempt, epoch=self.epoch)

    @property
    def attempt(self) -> Attempt:
        return self.session.attempt

    @property
    def state(self) -> SessionState:
        return self.session.state

    # ── lifecycle ──────────────────────────────────────────────────────

    def unlock(self, access_code: str | None = None) -> None:
        if self.access_code and (access_code or "").strip() != self.access_code:
            _log.info("Unlock rejected for epoch %d", self.epoch)
            raise AccessDeniedError("Incorrect access code")
        self.session.unlock()

    def reset(self) -> QuizSession:
        """Discard the current session and start a fresh locked attempt."""
        self.epoch += 1
        self.coordinator.reset(self.epoch)
        self.session = self._new_session()
        _log.info("Reset to epoch %d", self.epoch)
        return self.session

    # ── answers ────────────────────────────────────────────────────────

    def answer_question(self, index: int, option: str) -> None:
        self.session.answer_question(index, option)

    def choose_definition(self, section_id: int, word: str, definition: str) -> None:
        self.session.choose_definition(section_id, word, definition)

    def fill_blank(self, section_id: int, blank_index: int, text: str) -> None:
        self.session.fill_blank(section_id, blank_index, text)

    def check(self) -> ScoreBreakdown:
        return self.session.check()

    # ── submission ─────────────────────────────────────────────────────

    async def submit(self, respondent: Respondent | None = None) -> SubmissionResult | None:
        """Send the checked score for the current epoch (manual trigger)."""
        if respondent is not None:
            self.respondent = respondent
        if self.session.scores is None:
            raise SessionStateError("Check the score before submitting it")
        if self.respondent is None:
            raise SessionStateError("Respondent details are required to submit")
        self.respondent.validate()

        scores = self.session.scores
        payload = ScorePayload.build(self.document.title, self.respondent, scores.score, scores.total)
        return await self.coordinator.submit(payload, self.session.epoch)

    async def check_and_submit(
        self, respondent: Respondent | None = None
    ) -> tuple[ScoreBreakdown, SubmissionResult | None]:
        """Check the score, then submit it automatically when enabled."""
        scores = self.check()
        if respondent is not None:
            self.respondent = respondent
        result = None
        if self.auto_submit and self.respondent is not None and not self.respondent.missing_fields():
            result = await self.submit()
        return scores, result

    # ── reporting ──────────────────────────────────────────────────────

    def summary(self) -> dict:
        session = self.session
        data = {
            "title": self.document.title,
            "epoch": self.epoch,
            "state": session.state.value,
            "progress": session.progress(),
            "submission": {
                "status": self.coordinator.status.value,
                "message": self.coordinator.message,
                "in_flight": self.coordinator.in_flight,
                "can_submit": session.scores is not None and self.coordinator.can_submit(),
            },
            "scores": session.scores.to_dict() if session.scores else None,
        }
        if session.state is not SessionState.LOCKED:
            data["attempt"] = attempt_outline(session.attempt)
        if session.state is SessionState.CHECKED:
            data["feedback"] = session.feedback()
        return data


def attempt_outline(attempt: Attempt) -> dict:
    """JSON-ready view of an attempt, without revealing correct answers."""
    return {
        "questions": [
            {
                "index": rq.index,
                "group_id": rq.group_id,
                "attached_section_id": g.group.attached_section_id,
                "prompt": rq.question.prompt,
                "options": list(rq.options),
            }
            for g in attempt.question_groups
            for rq in g.questions
        ],
        "vocab": [
            {
                "section_id": item.key.section_id,
                "word": item.key.word,
                "choices": list(item.choices),
            }
            for item in attempt.vocab_items
        ],
        "cloze": [
            {
                "section_id": c.section.section_id,
                "segments": [
                    {"blank_index": seg.blank_index} if seg.is_blank else {"text": seg.text}
                    for seg in c.section.segments()
                ],
                "word_bank": sorted((b.word for b in c.blanks), key=str.casefold),
            }
            for c in attempt.cloze
        ],
    }


def document_outline(document: Document) -> dict:
    """JSON-ready view of the authored document, in authoring order."""
    sections = []
    for s in document.ordered_sections:
        entry = {"section_id": s.section_id, "kind": s.kind.value}
        if isinstance(s, TextSection):
            entry.update(listening_only=s.is_listening_only, body=None if s.is_listening_only else s.body)
        elif isinstance(s, InstructionsSection):
            entry.update(heading=s.heading, body=s.body)
        elif isinstance(s, VocabularySection):
            entry.update(words=len(s.entries), capacity=s.capacity)
        elif isinstance(s, ClozeSection):
            entry.update(blanks=len(s.blank_words), capacity=s.capacity)
        elif isinstance(s, QuestionGroup):
            entry.update(
                questions=len(s.bank),
                capacity=s.capacity,
                attached_section_id=s.attached_section_id,
                tied=s.tied,
                unscoreable=sum(1 for q in s.bank if not q.has_correct_option),
            )
        elif isinstance(s, AudioSection):
            entry.update(source_url=s.source_url)
        sections.append(entry)
    return {"title": document.title, "sections": sections}
