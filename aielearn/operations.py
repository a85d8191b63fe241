"""Operation lifecycle manager.

Tracks named background operations (quiz generation, answer verification,
...), picks the one worth showing, and disposes of finished ones after a
short display period.  All mutating methods are synchronous.  Timers run on
whichever event loop is current, so one manager can outlive several loops;
without a running loop, finished operations stay in the bounded history
until a later stop.
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from aielearn.models import new_id

if TYPE_CHECKING:
    from aielearn.config import Settings

log = logging.getLogger("aielearn.ops")

T = TypeVar("T")


class OperationContext(str, Enum):
    QUIZ_GENERATION = "quiz_generation"
    MISTAKE_QUIZ_GENERATION = "mistake_quiz_generation"
    AI_VERIFICATION = "ai_verification"
    SPEECH_PROCESSING = "speech_processing"
    API_KEY_VALIDATION = "api_key_validation"
    DATA_SYNC = "data_sync"
    GENERAL = "general"

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]

    @property
    def priority(self) -> int:
        return _PRIORITIES[self]


_DEFAULT_MESSAGES = {
    OperationContext.QUIZ_GENERATION: "Generating personalized quiz...",
    OperationContext.MISTAKE_QUIZ_GENERATION: "Creating review quiz from your mistakes...",
    OperationContext.AI_VERIFICATION: "Verifying your answer...",
    OperationContext.SPEECH_PROCESSING: "Processing speech...",
    OperationContext.API_KEY_VALIDATION: "Validating API key...",
    OperationContext.DATA_SYNC: "Syncing data...",
    OperationContext.GENERAL: "Loading...",
}

# Content generation blocks the learner; background sync never should.
_PRIORITIES = {
    OperationContext.QUIZ_GENERATION: 100,
    OperationContext.MISTAKE_QUIZ_GENERATION: 100,
    OperationContext.AI_VERIFICATION: 90,
    OperationContext.SPEECH_PROCESSING: 80,
    OperationContext.API_KEY_VALIDATION: 70,
    OperationContext.DATA_SYNC: 60,
    OperationContext.GENERAL: 50,
}


class StatusKind(str, Enum):
    LOADING = "loading"
    PROGRESS = "progress"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class OperationStatus:
    kind: StatusKind
    progress: float | None = None
    message: str | None = None

    @classmethod
    def loading(cls) -> OperationStatus:
        return cls(StatusKind.LOADING)

    @classmethod
    def at(cls, fraction: float) -> OperationStatus:
        return cls(StatusKind.PROGRESS, progress=fraction)

    @classmethod
    def success(cls, message: str | None = None) -> OperationStatus:
        return cls(StatusKind.SUCCESS, message=message)

    @classmethod
    def error(cls, message: str) -> OperationStatus:
        return cls(StatusKind.ERROR, message=message)

    @classmethod
    def cancelled(cls) -> OperationStatus:
        return cls(StatusKind.CANCELLED, message="Cancelled")

    @property
    def is_active(self) -> bool:
        return self.kind in (StatusKind.LOADING, StatusKind.PROGRESS)

    @property
    def is_terminal(self) -> bool:
        return not self.is_active


@dataclass
class Operation:
    context: OperationContext
    message: str
    start_time: float
    status: OperationStatus = field(default_factory=OperationStatus.loading)
    last_updated: float = 0.0
    can_cancel: bool = False
    on_cancel: Callable[[], Any] | None = None
    auto_hide_on_success: bool = True
    success_duration: float = 2.0
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if not self.last_updated:
            self.last_updated = self.start_time

    def duration(self, now: float | None = None) -> float:
        return (time.monotonic() if now is None else now) - self.start_time


class DelayQueue:
    """Keyed one-shot timers driven by a single ``loop.call_at`` handle.

    Entries live in a min-heap of ``(deadline, seq, key)``.  Rescheduling a
    key supersedes its older entry, which is dropped when it reaches the
    top of the heap.  Unless a loop is given, the queue follows whichever
    loop is running; pending entries move over to a new loop and keep
    their deadlines.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop
        self._pinned = loop is not None
        self._heap: list[tuple[float, int, Hashable]] = []
        self._pending: dict[Hashable, tuple[int, Callable[[], Any]]] = {}
        self._seq = itertools.count()
        self._handle: asyncio.TimerHandle | None = None
        self._handle_deadline: float | None = None

    def schedule(self, key: Hashable, delay: float, callback: Callable[[], Any]) -> bool:
        """Run *callback* after *delay* seconds.  False when no loop can run it."""
        loop = self._bind()
        if loop is None:
            return False
        seq = next(self._seq)
        deadline = loop.time() + max(0.0, delay)
        self._pending[key] = (seq, callback)
        heapq.heappush(self._heap, (deadline, seq, key))
        self._arm()
        return True

    def cancel(self, key: Hashable) -> bool:
        removed = self._pending.pop(key, None) is not None
        if removed:
            self._arm()
        return removed

    def clear(self) -> None:
        self._pending.clear()
        self._heap.clear()
        self._disarm()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def _bind(self) -> asyncio.AbstractEventLoop | None:
        if self._pinned:
            return None if self._loop.is_closed() else self._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            return None
        if running is not self._loop:
            if self._loop is not None:
                log.debug("Event loop changed, moving %d timers", len(self._pending))
            # The old handle belongs to the previous loop
            self._disarm()
            self._loop = running
        return running

    def _is_stale(self, seq: int, key: Hashable) -> bool:
        entry = self._pending.get(key)
        return entry is None or entry[0] != seq

    def _disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._handle_deadline = None

    def _arm(self) -> None:
        while self._heap and self._is_stale(self._heap[0][1], self._heap[0][2]):
            heapq.heappop(self._heap)
        if not self._heap:
            self._disarm()
            return
        loop = self._bind()
        if loop is None:
            return
        deadline = self._heap[0][0]
        if self._handle is not None and self._handle_deadline == deadline:
            return
        self._disarm()
        self._handle = loop.call_at(deadline, self._fire)
        self._handle_deadline = deadline

    def _fire(self) -> None:
        self._handle = None
        self._handle_deadline = None
        now = self._loop.time()
        due = []
        while self._heap and self._heap[0][0] <= now:
            _, seq, key = heapq.heappop(self._heap)
            if self._is_stale(seq, key):
                continue
            _, callback = self._pending.pop(key)
            due.append(callback)
        for callback in due:
            try:
                callback()
            except Exception:
                log.exception("Timer callback failed")
        self._arm()


class OperationManager:
    """Registry of concurrently running operations, at most one per context."""

    def __init__(
        self,
        success_duration: float = 2.0,
        error_duration: float = 4.0,
        cancel_duration: float = 1.5,
        progress_complete_delay: float = 0.5,
        history_limit: int = 20,
        clock: Callable[[], float] = time.monotonic,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.success_duration = success_duration
        self.error_duration = error_duration
        self.cancel_duration = cancel_duration
        self.progress_complete_delay = progress_complete_delay
        self.clock = clock
        self._active: dict[str, Operation] = {}
        self._by_context: dict[OperationContext, str] = {}
        self._completed: deque[Operation] = deque(maxlen=history_limit)
        self._timers = DelayQueue(loop)
        self._listeners: list[Callable[[OperationManager], Any]] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> OperationManager:
        return cls(
            success_duration=settings.success_duration,
            error_duration=settings.error_duration,
            cancel_duration=settings.cancel_duration,
            progress_complete_delay=settings.progress_complete_delay,
            history_limit=settings.completed_history_limit,
        )

    # ── Transitions ───────────────────────────────────────────────────────

    def start(
        self,
        context: OperationContext,
        message: str | None = None,
        *,
        can_cancel: bool = False,
        auto_hide_on_success: bool = True,
        success_duration: float | None = None,
        on_cancel: Callable[[], Any] | None = None,
    ) -> str:
        previous = self._by_context.get(context)
        if previous is not None:
            log.debug("Superseding %s operation %s", context.value, previous)
            self._drop_active(previous)

        op = Operation(
            context=context,
            message=message or context.default_message,
            start_time=self.clock(),
            can_cancel=can_cancel,
            on_cancel=on_cancel,
            auto_hide_on_success=auto_hide_on_success,
            success_duration=self.success_duration if success_duration is None else success_duration,
        )
        self._active[op.id] = op
        self._by_context[context] = op.id
        log.info("Started %s: %s", context.value, op.message)
        self._notify()
        return op.id

    def update_progress(self, op_id: str, fraction: float, message: str | None = None) -> None:
        op = self._active.get(op_id)
        if op is None:
            return
        fraction = min(1.0, max(0.0, fraction))
        op.status = OperationStatus.at(fraction)
        if message is not None:
            op.message = message
        op.last_updated = self.clock()
        scheduled = fraction < 1.0 or self._timers.schedule(
            ("progress", op_id),
            self.progress_complete_delay,
            lambda: self.complete(op_id, True),
        )
        self._notify()
        if not scheduled:
            self.complete(op_id, True)

    def complete(self, op_id: str, success: bool, message: str | None = None) -> None:
        op = self._finish(op_id)
        if op is None:
            return
        if success:
            op.status = OperationStatus.success(message)
            log.info("Completed %s", op.context.value)
        else:
            op.status = OperationStatus.error(message or "An error occurred")
            log.warning("Failed %s: %s", op.context.value, op.status.message)
        if message is not None:
            op.message = message
        op.last_updated = self.clock()
        self._completed.append(op)
        if not success:
            self._schedule_hide(op_id, self.error_duration)
        elif op.auto_hide_on_success:
            self._schedule_hide(op_id, op.success_duration)
        self._notify()

    def cancel(self, op_id: str) -> None:
        op = self._finish(op_id)
        if op is None:
            return
        callback, op.on_cancel = op.on_cancel, None
        if callback is not None:
            try:
                callback()
            except Exception:
                log.exception("Cancel callback for %s failed", op.context.value)
        op.status = OperationStatus.cancelled()
        op.message = "Cancelled"
        op.last_updated = self.clock()
        self._completed.append(op)
        self._schedule_hide(op_id, self.cancel_duration)
        log.info("Cancelled %s", op.context.value)
        self._notify()

    def stop(self, op_id: str) -> None:
        """Forget an operation without a terminal transition."""
        was_active = self._drop_active(op_id)
        was_completed = self._drop_completed(op_id)
        self._timers.cancel(("hide", op_id))
        if was_active or was_completed:
            self._notify()

    def stop_context(self, context: OperationContext) -> None:
        op_id = self._by_context.get(context)
        if op_id is not None:
            self.stop(op_id)

    def stop_all(self) -> None:
        self._active.clear()
        self._by_context.clear()
        self._completed.clear()
        self._timers.clear()
        self._notify()

    async def with_operation(
        self,
        context: OperationContext,
        op: Callable[..., Awaitable[T]],
        message: str | None = None,
        *,
        can_cancel: bool = False,
        on_cancel: Callable[[], Any] | None = None,
        progress: bool = False,
    ) -> T:
        """Run *op* as a tracked operation and hand back its result or exception.

        With ``progress=True`` *op* is called with an ``update(fraction,
        message=None)`` callable.  If the operation was superseded or
        cancelled while *op* ran, the final transition is a no-op.
        """
        op_id = self.start(context, message, can_cancel=can_cancel, on_cancel=on_cancel)
        try:
            if progress:
                result = await op(lambda fraction, msg=None: self.update_progress(op_id, fraction, msg))
            else:
                result = await op()
        except asyncio.CancelledError:
            self.cancel(op_id)
            raise
        except Exception as e:
            self.complete(op_id, False, str(e) or type(e).__name__)
            raise
        self.complete(op_id, True)
        return result

    # ── Queries ───────────────────────────────────────────────────────────

    @property
    def primary(self) -> Operation | None:
        """Highest-priority active operation; ties go to the one running longest."""
        if not self._active:
            return None
        return max(
            self._active.values(),
            key=lambda op: (op.context.priority, -op.start_time),
        )

    @property
    def active(self) -> list[Operation]:
        return list(self._active.values())

    @property
    def recently_completed(self) -> list[Operation]:
        return list(self._completed)

    @property
    def is_any_loading(self) -> bool:
        return bool(self._active)

    def is_loading(self, context: OperationContext) -> bool:
        return context in self._by_context

    def get(self, op_id: str) -> Operation | None:
        op = self._active.get(op_id)
        if op is not None:
            return op
        return next((c for c in self._completed if c.id == op_id), None)

    def state_for(self, context: OperationContext) -> Operation | None:
        op_id = self._by_context.get(context)
        return self._active.get(op_id) if op_id is not None else None

    def progress_for(self, context: OperationContext) -> float | None:
        op = self.state_for(context)
        if op is None or op.status.kind is not StatusKind.PROGRESS:
            return None
        return op.status.progress

    def subscribe(self, callback: Callable[[OperationManager], Any]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ── Internals ─────────────────────────────────────────────────────────

    def _finish(self, op_id: str) -> Operation | None:
        """Pop an active operation for its terminal transition."""
        op = self._active.pop(op_id, None)
        if op is None:
            return None
        if self._by_context.get(op.context) == op_id:
            del self._by_context[op.context]
        self._timers.cancel(("progress", op_id))
        return op

    def _drop_active(self, op_id: str) -> bool:
        return self._finish(op_id) is not None

    def _drop_completed(self, op_id: str) -> bool:
        kept = [op for op in self._completed if op.id != op_id]
        if len(kept) == len(self._completed):
            return False
        self._completed = deque(kept, maxlen=self._completed.maxlen)
        return True

    def _schedule_hide(self, op_id: str, delay: float) -> None:
        if not self._timers.schedule(("hide", op_id), delay, lambda: self._hide(op_id)):
            log.debug("No running event loop, %s stays in history", op_id)

    def _hide(self, op_id: str) -> None:
        if self._drop_completed(op_id):
            log.debug("Hid operation %s", op_id)
            self._notify()

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                log.exception("Operation listener failed")
