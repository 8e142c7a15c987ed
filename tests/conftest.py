"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import random

import pytest

from comprehension_quiz.parsers.document_builder import parse_document
from comprehension_quiz.transports.base import SubmissionError, SubmissionReceipt


class FakeTransport:
    """Records posted payloads; optionally fails or blocks until released."""

    def __init__(self, fail: bool = False, message: str = "Thanks!"):
        self.fail = fail
        self.message = message
        self.posted: list[tuple[str, dict]] = []
        self.release: asyncio.Event | None = None

    async def post(self, url: str, payload: dict) -> SubmissionReceipt:
        self.posted.append((url, payload))
        if self.release is not None:
            await self.release.wait()
        if self.fail:
            raise SubmissionError("connection refused")
        return SubmissionReceipt(message=self.message, status_code=200)

    def name(self) -> str:
        return "fake-transport"


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def quiz_text():
    """One block of every section type, in a fixed order."""
    return """\
Reading Day

This line is ignored.
---
instructions
Read carefully

Answer every question.
Take your time.
---
text
First paragraph of the passage.

Second paragraph of the passage.
---
questions
Q: What is the capital of France?
A: Berlin
A: Paris [correct]
A: Madrid
E: Paris has been the capital for centuries.
---
vocab
dog: an animal
cod: a fish
oak: a tree
---
cloze
The *quick* brown fox jumps over the *lazy* dog.
---
text-listening
Only for narration.
---
audio
audio-src = https://example.org/passage.mp3
"""


@pytest.fixture
def small_quiz_text():
    """Exactly one question, one vocabulary word and one cloze blank."""
    return """\
Tiny Quiz
---
questions
Q: What is the capital of France?
A: Paris [correct]
A: Rome
---
vocab
dog: an animal
---
cloze
The *Quick* fox.
"""


@pytest.fixture
def small_document(small_quiz_text, rng):
    return parse_document(small_quiz_text, rng)
