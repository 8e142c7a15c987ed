from __future__ import annotations

import logging
import time

import httpx

from comprehension_quiz.transports.base import SubmissionError, SubmissionReceipt, SubmissionTransport

log = logging.getLogger("comprehension_quiz.transport")

DEFAULT_SUCCESS_MESSAGE = "Submission successful!"
NON_JSON_SUCCESS_MESSAGE = "Submission received (non-JSON response)"


class HttpxTransport(SubmissionTransport):
    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.timeout = timeout
        self._client = client

    async def post(self, url: str, payload: dict) -> SubmissionReceipt:
        t0 = time.monotonic()
        try:
            if self._client is not None:
                resp = await self._client.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            log.warning("POST %s failed: %s", url, e)
            raise SubmissionError(str(e)) from e

        elapsed = time.monotonic() - t0
        if not resp.is_success:
            log.warning("POST %s returned HTTP %d (%.1fs)", url, resp.status_code, elapsed)
            raise SubmissionError(f"HTTP error! status: {resp.status_code}")

        log.info("POST %s returned HTTP %d (%.1fs)", url, resp.status_code, elapsed)
        return SubmissionReceipt(message=_success_message(resp), status_code=resp.status_code)

    def name(self) -> str:
        return "httpx"


def _success_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        log.info("Non-JSON response received: %.200s", resp.text)
        return NON_JSON_SUCCESS_MESSAGE
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return DEFAULT_SUCCESS_MESSAGE
