"""Shared test fixtures."""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from aielearn.mistakes import MistakeLedger
from aielearn.models import (
    LearningFocus,
    LearningTopic,
    ProficiencyLevel,
    QuestionType,
    UserProfile,
)
from aielearn.storage import MemoryKeyValueStore


class FakeLLM:
    """Returns canned responses in order, repeating the last one."""

    def __init__(self, responses=None, error: Exception | None = None):
        self._responses = responses or []
        self._error = error
        self._call_count = 0
        self.prompts: list[str] = []

    async def generate(self, prompt: str, temperature: float = 0.7, system=None, max_tokens=None) -> str:
        self._call_count += 1
        self.prompts.append(prompt)
        if self._error is not None:
            raise self._error
        idx = min(self._call_count - 1, len(self._responses) - 1)
        return self._responses[idx]

    def name(self) -> str:
        return "fake-llm"

    @property
    def call_count(self):
        return self._call_count


class FakeClock:
    """Settable UTC clock for ledger scheduling tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def ledger(store, clock):
    return MistakeLedger(store, clock=clock)


@pytest.fixture
def profile():
    return UserProfile(
        proficiency_level=ProficiencyLevel.INTERMEDIATE,
        selected_topics={LearningTopic.TRAVEL, LearningTopic.BUSINESS},
        learning_focuses={LearningFocus.VOCABULARY},
    )


@pytest.fixture
def record_mistake(ledger):
    """Record a mistake with sensible defaults; keyword overrides allowed."""

    def _record(question="She ___ been working all week.", correct_answer="has",
                user_answer="have", **kwargs):
        fields = dict(
            explanation="Present perfect uses 'has' with she.",
            question_type=QuestionType.FILL_IN_THE_BLANK,
            difficulty=ProficiencyLevel.INTERMEDIATE,
            topic=LearningTopic.GRAMMAR,
            focus=LearningFocus.GRAMMAR,
        )
        fields.update(kwargs)
        explanation = fields.pop("explanation")
        return ledger.record(question, correct_answer, user_answer, explanation, **fields)

    return _record


def question_json(n: int = 1, qtype: str = "multipleChoice") -> list[dict]:
    return [
        {
            "type": qtype,
            "question": f"Question {i}?",
            "correctAnswer": f"answer {i}",
            "options": [f"answer {i}", "b", "c", "d"],
            "explanation": f"Because {i}.",
        }
        for i in range(1, n + 1)
    ]


def as_response(payload) -> str:
    return "Here you go:\n```json\n" + json.dumps(payload) + "\n```"
