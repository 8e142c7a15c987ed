from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

# Overrides submission_url from config.json when set
SUBMISSION_URL_ENV = "COMPREHENSION_QUIZ_SUBMISSION_URL"

DEFAULTS = {
    "submission_url": "",
    "quiz_file": "data/sample_quiz.txt",
    "access_code": "",
    "auto_submit": True,
    "submission_timeout": 30.0,
}


@dataclass
class Settings:
    submission_url: str = DEFAULTS["submission_url"]
    quiz_file: str = DEFAULTS["quiz_file"]
    access_code: str = DEFAULTS["access_code"]
    auto_submit: bool = DEFAULTS["auto_submit"]
    submission_timeout: float = DEFAULTS["submission_timeout"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def quiz_full_path(self) -> Path | None:
        if not self.quiz_file:
            return None
        p = Path(self.quiz_file)
        return p if p.is_absolute() else self.project_root / p

    def to_dict(self) -> dict:
        return {
            "submission_url": self.submission_url,
            "quiz_file": self.quiz_file,
            "access_code": self.access_code,
            "auto_submit": self.auto_submit,
            "submission_timeout": self.submission_timeout,
        }


def load_settings() -> Settings:
    settings = Settings()
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        settings = Settings(**filtered)
    env_url = os.environ.get(SUBMISSION_URL_ENV)
    if env_url:
        settings.submission_url = env_url
    return settings


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
