"""Score report payloads and the single-flight submission state machine.

Status moves IDLE -> SUBMITTING -> SUCCEEDED | FAILED.  FAILED may be
resent; SUCCEEDED is terminal until the coordinator is reset for a new
session epoch.  A missing endpoint yields NOT_CONFIGURED instead of a
network attempt.

Each submission carries the epoch of the session that produced it.  When a
session is reset while a request is still in flight, the request is left to
finish but its outcome is discarded.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from comprehension_quiz.transports.base import SubmissionError, SubmissionTransport

_log = logging.getLogger("comprehension_quiz.submission")

NOT_CONFIGURED_MESSAGE = "No submission URL configured."
FAILED_MESSAGE = "Could not submit score. Please try again."


class SubmissionStatus(enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_CONFIGURED = "not_configured"


class IncompleteRespondentError(ValueError):
    def __init__(self, missing: list[str]):
        super().__init__(f"Missing respondent fields: {', '.join(missing)}")
        self.missing = missing


@dataclass(frozen=True)
class Respondent:
    nickname: str
    homeroom: str
    student_id: str

    def missing_fields(self) -> list[str]:
        return [
            name for name, value in (
                ("nickname", self.nickname),
                ("homeroom", self.homeroom),
                ("student_id", self.student_id),
            )
            if not (value or "").strip()
        ]

    def validate(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise IncompleteRespondentError(missing)


@dataclass(frozen=True)
class ScorePayload:
    quiz_name: str
    respondent: Respondent
    score: int
    total: int
    timestamp: str

    @classmethod
    def build(cls, quiz_name: str, respondent: Respondent, score: int, total: int) -> ScorePayload:
        ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return cls(quiz_name, respondent, score, total, ts)

    def to_dict(self) -> dict:
        return {
            "quizName": self.quiz_name,
            "nickname": self.respondent.nickname,
            "homeroom": self.respondent.homeroom,
            "studentId": self.respondent.student_id,
            "score": self.score,
            "total": self.total,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SubmissionResult:
    status: SubmissionStatus
    message: str
    epoch: int

    @property
    def retryable(self) -> bool:
        return self.status is SubmissionStatus.FAILED


class SubmissionCoordinator:
    def __init__(self, transport: SubmissionTransport, url: str | None = None, epoch: int = 0):
        self.transport = transport
        self.url = url or None
        self.epoch = epoch
        self.status = SubmissionStatus.IDLE
        self.message = ""
        self.requests_sent = 0
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def configure(self, url: str | None) -> None:
        self.url = url or None
        if self.url and self.status is SubmissionStatus.NOT_CONFIGURED:
            self.status = SubmissionStatus.IDLE
            self.message = ""

    def reset(self, epoch: int) -> None:
        """Start tracking a new session epoch; any in-flight request goes stale."""
        if self._in_flight:
            _log.info("Epoch %d -> %d with a submission still in flight", self.epoch, epoch)
        self.epoch = epoch
        self.status = SubmissionStatus.IDLE
        self.message = ""

    def can_submit(self) -> bool:
        return not self._in_flight and self.status in (
            SubmissionStatus.IDLE,
            SubmissionStatus.FAILED,
            SubmissionStatus.NOT_CONFIGURED,
        )

    async def submit(self, payload: ScorePayload, epoch: int) -> SubmissionResult | None:
        """Send *payload* for *epoch*.

        Returns None when the call is a no-op: a request is already in
        flight, the epoch is stale, or this epoch has already succeeded.
        """
        if self._in_flight:
            _log.info("Submission already in flight; ignoring request")
            return None
        if epoch != self.epoch:
            _log.info("Ignoring submission for stale epoch %d (current %d)", epoch, self.epoch)
            return None
        if self.status is SubmissionStatus.SUCCEEDED:
            _log.info("Epoch %d already submitted", epoch)
            return None

        if not self.url:
            self.status = SubmissionStatus.NOT_CONFIGURED
            self.message = NOT_CONFIGURED_MESSAGE
            _log.warning(NOT_CONFIGURED_MESSAGE)
            return SubmissionResult(self.status, self.message, epoch)

        self._in_flight = True
        self.status = SubmissionStatus.SUBMITTING
        self.requests_sent += 1
        _log.info("Submitting %d/%d for %r (epoch %d)",
                  payload.score, payload.total, payload.quiz_name, epoch)
        try:
            receipt = await self.transport.post(self.url, payload.to_dict())
        except SubmissionError as e:
            status, message = SubmissionStatus.FAILED, FAILED_MESSAGE
            _log.warning("Submission failed: %s", e)
        else:
            status, message = SubmissionStatus.SUCCEEDED, receipt.message
        finally:
            self._in_flight = False

        if epoch != self.epoch:
            _log.info("Discarding %s result for stale epoch %d", status.value, epoch)
            return None

        self.status = status
        self.message = message
        return SubmissionResult(status, message, epoch)
