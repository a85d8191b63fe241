from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

# Credentials starting with these (case-insensitive) never reach a provider.
SENTINEL_KEY_PREFIXES = ("test", "demo")

DEFAULTS = {
    "llm_provider": "openai",
    "llm_model": "gpt-4o-mini",
    "ollama_url": "http://localhost:11434",
    "offline_mode": False,
    "db_path": "aielearn.db",
    "mistakes_storage_key": "AIELearn_Mistakes",
    "review_intervals_days": [0, 1, 3, 7, 14, 30],
    "mastery_reviews": 3,
    "quiz_question_count": 10,
    "success_duration": 2.0,
    "error_duration": 4.0,
    "cancel_duration": 1.5,
    "progress_complete_delay": 0.5,
    "completed_history_limit": 20,
}

API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


@dataclass
class Settings:
    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    offline_mode: bool = DEFAULTS["offline_mode"]
    db_path: str = DEFAULTS["db_path"]
    mistakes_storage_key: str = DEFAULTS["mistakes_storage_key"]
    review_intervals_days: list[int] = field(
        default_factory=lambda: list(DEFAULTS["review_intervals_days"])
    )
    mastery_reviews: int = DEFAULTS["mastery_reviews"]
    quiz_question_count: int = DEFAULTS["quiz_question_count"]
    success_duration: float = DEFAULTS["success_duration"]
    error_duration: float = DEFAULTS["error_duration"]
    cancel_duration: float = DEFAULTS["cancel_duration"]
    progress_complete_delay: float = DEFAULTS["progress_complete_delay"]
    completed_history_limit: int = DEFAULTS["completed_history_limit"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    def api_key(self) -> str | None:
        """Credential for the configured provider, from the environment."""
        env = API_KEY_ENV.get(self.llm_provider)
        if env is None:
            return None
        return os.environ.get(env) or None

    def to_dict(self) -> dict:
        return {
            "llm_provider": self.llm_provider,
            "llm_model": self.llm_model,
            "ollama_url": self.ollama_url,
            "offline_mode": self.offline_mode,
            "db_path": self.db_path,
            "mistakes_storage_key": self.mistakes_storage_key,
            "review_intervals_days": self.review_intervals_days,
            "mastery_reviews": self.mastery_reviews,
            "quiz_question_count": self.quiz_question_count,
            "success_duration": self.success_duration,
            "error_duration": self.error_duration,
            "cancel_duration": self.cancel_duration,
            "progress_complete_delay": self.progress_complete_delay,
            "completed_history_limit": self.completed_history_limit,
        }


def is_sentinel_key(api_key: str | None) -> bool:
    if not api_key:
        return False
    return api_key.lower().startswith(SENTINEL_KEY_PREFIXES)


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        # Migrate: demo_mode -> offline_mode
        if "demo_mode" in raw:
            raw.setdefault("offline_mode", bool(raw["demo_mode"]))
            del raw["demo_mode"]
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
