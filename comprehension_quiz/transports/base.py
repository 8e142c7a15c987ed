from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class SubmissionError(Exception):
    """A score report could not be delivered; the caller may retry."""


@dataclass(frozen=True)
class SubmissionReceipt:
    message: str
    status_code: int | None = None


class SubmissionTransport(ABC):
    @abstractmethod
    async def post(self, url: str, payload: dict) -> SubmissionReceipt:
        """Deliver *payload* to *url*; raise SubmissionError on failure."""
        ...

    @abstractmethod
    def name(self) -> str:
        ...
