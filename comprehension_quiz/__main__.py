"""CLI entry point for comprehension-quiz.

Usage:
  python -m comprehension_quiz serve [--port PORT] [--host HOST]
  python -m comprehension_quiz inspect FILE
  python -m comprehension_quiz attempt FILE [--seed N]
"""
from __future__ import annotations

import json
import random
import sys
from pathlib import Path


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "inspect":
        _inspect(args[1:])
    elif command == "attempt":
        _attempt(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, inspect, attempt")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _quiz_path(args: list[str]) -> Path:
    positional = [a for i, a in enumerate(args)
                  if not a.startswith("--") and (i == 0 or not args[i - 1].startswith("--"))]
    if not positional:
        print("A quiz file is required.")
        sys.exit(1)
    path = Path(positional[0])
    if not path.exists():
        print(f"File not found: {path}")
        sys.exit(1)
    return path


def _serve(args: list[str]):
    import uvicorn

    port = int(_parse_flag(args, "--port", "8765"))
    host = _parse_flag(args, "--host", "127.0.0.1")

    print(f"Starting Comprehension Quiz on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    uvicorn.run(
        "comprehension_quiz.app:app",
        host=host,
        port=port,
        reload=False,
        timeout_graceful_shutdown=5,
    )


def _inspect(args: list[str]):
    from comprehension_quiz.engine import document_outline
    from comprehension_quiz.parsers.document_builder import parse_document_file

    doc = parse_document_file(_quiz_path(args))
    print(json.dumps(document_outline(doc), indent=2, ensure_ascii=False))


def _attempt(args: list[str]):
    from comprehension_quiz.attempt import generate_attempt
    from comprehension_quiz.engine import attempt_outline
    from comprehension_quiz.parsers.document_builder import parse_document_file

    seed = _parse_flag(args, "--seed", "")
    rng = random.Random(int(seed)) if seed else random.Random()
    doc = parse_document_file(_quiz_path(args), rng)
    attempt = generate_attempt(doc, rng)
    print(json.dumps(attempt_outline(attempt), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
