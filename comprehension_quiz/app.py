"""FastAPI application exposing one in-memory quiz session."""
from __future__ import annotations

import logging

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request

from comprehension_quiz.config import Settings, load_settings, save_settings
from comprehension_quiz.engine import AccessDeniedError, QuizRunner, document_outline
from comprehension_quiz.parsers.document_builder import parse_document, parse_document_file
from comprehension_quiz.session import InvalidAnswerError, SessionStateError, UnknownItemError
from comprehension_quiz.submission import IncompleteRespondentError, Respondent
from comprehension_quiz.transports.base import SubmissionTransport
from comprehension_quiz.transports.http_httpx import HttpxTransport

app = FastAPI(title="Comprehension Quiz")

# Global state (initialized in startup)
_settings: Settings | None = None
_runner: QuizRunner | None = None

_log = logging.getLogger("comprehension_quiz.app")


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_runner() -> QuizRunner:
    if _runner is None:
        raise HTTPException(400, "No quiz loaded")
    return _runner


def _get_transport() -> SubmissionTransport:
    return HttpxTransport(timeout=get_settings().submission_timeout)


def _runner_for(document) -> QuizRunner:
    s = get_settings()
    return QuizRunner(
        document,
        transport=_get_transport(),
        submission_url=s.submission_url,
        access_code=s.access_code,
        auto_submit=s.auto_submit,
    )


def _load_configured_quiz() -> QuizRunner | None:
    path = get_settings().quiz_full_path
    if path is None or not path.exists():
        _log.info("No quiz file at %s", path)
        return None
    return _runner_for(parse_document_file(path))


def _respondent_from(body: dict) -> Respondent | None:
    data = body.get("respondent")
    if not data:
        return None
    return Respondent(
        nickname=data.get("nickname", ""),
        homeroom=data.get("homeroom", ""),
        student_id=data.get("student_id", data.get("studentId", "")),
    )


@app.on_event("startup")
async def startup():
    global _settings, _runner
    if _settings is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _runner = _load_configured_quiz()


# ── API: Quiz document ────────────────────────────────────────────────────

@app.get("/api/quiz")
async def api_quiz():
    return document_outline(get_runner().document)


@app.post("/api/quiz/load")
async def api_quiz_load(request: Request):
    global _runner
    body = await request.json() if await request.body() else {}
    text = body.get("text")
    if text is not None:
        _runner = _runner_for(parse_document(text))
    else:
        runner = _load_configured_quiz()
        if runner is None:
            raise HTTPException(400, "No quiz text given and no quiz file configured")
        _runner = runner
    return document_outline(_runner.document)


# ── API: Session ──────────────────────────────────────────────────────────

@app.get("/api/session")
async def api_session():
    return get_runner().summary()


@app.post("/api/session/unlock")
async def api_session_unlock(request: Request):
    body = await request.json() if await request.body() else {}
    runner = get_runner()
    try:
        runner.unlock(body.get("access_code"))
    except AccessDeniedError as e:
        raise HTTPException(403, str(e))
    except SessionStateError as e:
        raise HTTPException(409, str(e))
    return runner.summary()


@app.post("/api/session/answer")
async def api_session_answer(request: Request):
    body = await request.json()
    runner = get_runner()
    kind = body.get("kind")
    try:
        if kind == "question":
            runner.answer_question(int(body["index"]), body["option"])
        elif kind == "vocab":
            runner.choose_definition(int(body["section_id"]), body["word"], body["definition"])
        elif kind == "cloze":
            runner.fill_blank(int(body["section_id"]), int(body["blank_index"]), body.get("text", ""))
        else:
            raise HTTPException(422, f"Unknown answer kind: {kind!r}")
    except KeyError as e:
        if isinstance(e, UnknownItemError):
            raise HTTPException(404, f"Unknown item: {e.args[0]!r}")
        raise HTTPException(422, f"Missing field: {e.args[0]}")
    except SessionStateError as e:
        raise HTTPException(409, str(e))
    except (InvalidAnswerError, ValueError, TypeError) as e:
        raise HTTPException(422, str(e))
    return {"progress": runner.session.progress()}


@app.post("/api/session/check")
async def api_session_check(request: Request):
    body = await request.json() if await request.body() else {}
    runner = get_runner()
    try:
        await runner.check_and_submit(_respondent_from(body))
    except SessionStateError as e:
        raise HTTPException(409, str(e))
    return runner.summary()


@app.post("/api/session/submit")
async def api_session_submit(request: Request):
    body = await request.json() if await request.body() else {}
    runner = get_runner()
    try:
        result = await runner.submit(_respondent_from(body))
    except IncompleteRespondentError as e:
        raise HTTPException(400, str(e))
    except SessionStateError as e:
        raise HTTPException(409, str(e))
    summary = runner.summary()
    summary["submitted"] = result is not None
    return summary


@app.post("/api/session/reset")
async def api_session_reset():
    runner = get_runner()
    runner.reset()
    return runner.summary()


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.post("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    current = s.to_dict()
    updates = {}
    for key, value in body.items():
        if key not in current:
            continue
        expected = type(current[key])
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, expected):
            raise HTTPException(422, f"{key} must be of type {expected.__name__}")
        updates[key] = value
    for key, value in updates.items():
        setattr(s, key, value)
    save_settings(s)
    if _runner is not None:
        _runner.coordinator.transport = _get_transport()
        _runner.coordinator.configure(s.submission_url)
        _runner.access_code = s.access_code or None
        _runner.auto_submit = s.auto_submit
    return s.to_dict()
