"""Mistake ledger: records wrong answers and decides when each comes back for review."""
from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from aielearn.models import (
    LearningFocus,
    LearningTopic,
    MistakeRecord,
    ProficiencyLevel,
    QuestionType,
    utcnow,
)

if TYPE_CHECKING:
    from aielearn.config import Settings
    from aielearn.storage import KeyValueStore

log = logging.getLogger("aielearn.ledger")

DEFAULT_STORAGE_KEY = "AIELearn_Mistakes"

# Days to wait before a mistake is due again, indexed by review_count.
# Counts past the end of the table use the last entry.
DEFAULT_INTERVALS_DAYS = (0, 1, 3, 7, 14, 30)
DEFAULT_MASTERY_REVIEWS = 3


@dataclass(frozen=True)
class ReviewSchedule:
    intervals_days: tuple[int, ...] = DEFAULT_INTERVALS_DAYS
    mastery_reviews: int = DEFAULT_MASTERY_REVIEWS

    def __post_init__(self):
        if not self.intervals_days:
            raise ValueError("intervals_days must not be empty")
        if any(b < a for a, b in zip(self.intervals_days, self.intervals_days[1:])):
            raise ValueError("intervals_days must be non-decreasing")

    @classmethod
    def from_settings(cls, settings: Settings) -> ReviewSchedule:
        return cls(
            intervals_days=tuple(settings.review_intervals_days),
            mastery_reviews=settings.mastery_reviews,
        )

    def interval_for(self, review_count: int) -> int:
        idx = min(max(review_count, 0), len(self.intervals_days) - 1)
        return self.intervals_days[idx]

    def is_due(self, review_count: int, last_reviewed_at: datetime | None, now: datetime) -> bool:
        """Whole elapsed days since the last review must reach the interval.

        A mistake that was never reviewed is always due.
        """
        if last_reviewed_at is None:
            return True
        elapsed_days = (now - last_reviewed_at).days
        return elapsed_days >= self.interval_for(review_count)


class MistakeLedger:
    """Most-recent-first collection of MistakeRecords, persisted on every change."""

    def __init__(
        self,
        store: KeyValueStore,
        schedule: ReviewSchedule | None = None,
        clock: Callable[[], datetime] = utcnow,
        storage_key: str = DEFAULT_STORAGE_KEY,
    ):
        self.store = store
        self.schedule = schedule or ReviewSchedule()
        self.clock = clock
        self.storage_key = storage_key
        self._lock = threading.RLock()
        self._mistakes: list[MistakeRecord] = []
        self._load()

    # ── Mutations ─────────────────────────────────────────────────────────

    def record(
        self,
        question: str,
        correct_answer: str,
        user_answer: str,
        explanation: str,
        *,
        question_type: QuestionType,
        difficulty: ProficiencyLevel,
        topic: LearningTopic,
        focus: LearningFocus,
        feedback: str | None = None,
        options: Sequence[str] | None = None,
    ) -> MistakeRecord | None:
        """Insert a new mistake at the front.

        Returns None without changing anything when a record with the same
        (question, correct_answer) pair already exists.
        """
        with self._lock:
            if self._find(question, correct_answer) is not None:
                log.debug("Mistake already tracked: %s", question)
                return None
            mistake = MistakeRecord(
                question=question,
                correct_answer=correct_answer,
                user_answer=user_answer,
                explanation=explanation,
                feedback=feedback,
                question_type=question_type,
                difficulty=difficulty,
                topic=topic,
                focus=focus,
                options=list(options) if options is not None else None,
                created_at=self.clock(),
            )
            self._mistakes.insert(0, mistake)
            self._save()
            log.info("Saved mistake: %s", question)
            return mistake

    def mark_reviewed(self, mistake: MistakeRecord | str, was_correct: bool) -> MistakeRecord | None:
        with self._lock:
            current = self._get(_mistake_id(mistake))
            if current is None:
                return None
            now = self.clock()
            current.review_count += 1
            current.last_reviewed_at = now
            if (
                was_correct
                and current.review_count >= self.schedule.mastery_reviews
                and current.mastered_at is None
            ):
                current.mastered_at = now
                log.info("Mastered: %s", current.question)
            self._save()
            log.info("Updated review for: %s (count=%d)", current.question, current.review_count)
            return current

    def delete(self, mistake: MistakeRecord | str) -> bool:
        mistake_id = _mistake_id(mistake)
        with self._lock:
            before = len(self._mistakes)
            self._mistakes = [m for m in self._mistakes if m.id != mistake_id]
            removed = len(self._mistakes) != before
            self._save()
            return removed

    def clear_mastered(self) -> int:
        with self._lock:
            before = len(self._mistakes)
            self._mistakes = [m for m in self._mistakes if not m.is_mastered]
            removed = before - len(self._mistakes)
            self._save()
            if removed:
                log.info("Cleared %d mastered mistakes", removed)
            return removed

    # ── Queries ───────────────────────────────────────────────────────────

    @property
    def mistakes(self) -> list[MistakeRecord]:
        with self._lock:
            return list(self._mistakes)

    def get(self, mistake_id: str) -> MistakeRecord | None:
        with self._lock:
            return self._get(mistake_id)

    def find(self, question: str, correct_answer: str) -> MistakeRecord | None:
        with self._lock:
            return self._find(question, correct_answer)

    def needs_review(self, mistake: MistakeRecord) -> bool:
        return self.schedule.is_due(mistake.review_count, mistake.last_reviewed_at, self.clock())

    def pending_review(self) -> list[MistakeRecord]:
        with self._lock:
            return [m for m in self._mistakes if not m.is_mastered and self.needs_review(m)]

    def mastered(self) -> list[MistakeRecord]:
        with self._lock:
            return [m for m in self._mistakes if m.is_mastered]

    def by_topic(self) -> dict[LearningTopic, list[MistakeRecord]]:
        grouped: dict[LearningTopic, list[MistakeRecord]] = defaultdict(list)
        for m in self.mistakes:
            if not m.is_mastered:
                grouped[m.topic].append(m)
        return dict(grouped)

    def by_focus(self) -> dict[LearningFocus, list[MistakeRecord]]:
        grouped: dict[LearningFocus, list[MistakeRecord]] = defaultdict(list)
        for m in self.mistakes:
            if not m.is_mastered:
                grouped[m.focus].append(m)
        return dict(grouped)

    @property
    def pending_review_count(self) -> int:
        return len(self.pending_review())

    @property
    def mastered_count(self) -> int:
        return len(self.mastered())

    @property
    def total_count(self) -> int:
        with self._lock:
            return len(self._mistakes)

    def __len__(self) -> int:
        return self.total_count

    # ── Persistence ───────────────────────────────────────────────────────

    def _get(self, mistake_id: str) -> MistakeRecord | None:
        return next((m for m in self._mistakes if m.id == mistake_id), None)

    def _find(self, question: str, correct_answer: str) -> MistakeRecord | None:
        return next(
            (m for m in self._mistakes
             if m.question == question and m.correct_answer == correct_answer),
            None,
        )

    def _load(self) -> None:
        raw = self.store.get(self.storage_key)
        if raw is None:
            return
        try:
            data = json.loads(raw.decode("utf-8"))
            self._mistakes = [MistakeRecord.from_dict(d) for d in data]
        except (UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
            # Unreadable data is treated as no prior data.
            log.warning("Could not decode stored mistakes, starting empty: %s", e)
            self._mistakes = []
            return
        log.info("Loaded %d mistake records", len(self._mistakes))

    def _save(self) -> None:
        payload = json.dumps([m.to_dict() for m in self._mistakes])
        self.store.set(self.storage_key, payload.encode("utf-8"))
        log.debug("Saved %d mistake records", len(self._mistakes))


def _mistake_id(mistake: MistakeRecord | str) -> str:
    return mistake if isinstance(mistake, str) else mistake.id
