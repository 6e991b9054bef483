"""Structured progress events for report runs.

Report code emits :class:`ProgressEvent` objects into a
:class:`ProgressChannel`. Any number of consumers can attach: plain
callables via :meth:`ProgressChannel.subscribe`, or async consumers via
:meth:`ProgressChannel.stream`. Emitting never affects control flow.
"""

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Phases:
#   "start"   - a report or fetch is starting (detail in message)
#   "fetch"   - a page is being fetched (current=records so far)
#   "process" - records are being transformed (current=count)
#   "done"    - the report finished (current=row count)
PHASES = ("start", "fetch", "process", "done")

# Most recent events kept on a channel
DEFAULT_HISTORY_SIZE = 1000


@dataclass(frozen=True)
class ProgressEvent:
    """A single coarse milestone in a report run."""

    report: str
    phase: str
    message: str
    current: int = 0
    total: int | None = None


ProgressListener = Callable[[ProgressEvent], None]

_CLOSED = object()


class ProgressChannel:
    """Fan-out channel for progress events."""

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE):
        self._listeners: list[ProgressListener] = []
        self._queues: list[asyncio.Queue] = []
        self._closed = False
        self.events: deque[ProgressEvent] = deque(maxlen=history_size)
        self._last_message = ""

    @property
    def last_message(self) -> str:
        """Most recent status message, or an empty string."""
        return self._last_message

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Attach a listener; returns a function that detaches it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(
        self,
        report: str,
        phase: str,
        message: str,
        current: int = 0,
        total: int | None = None,
    ) -> ProgressEvent:
        """Publish an event to every subscriber."""
        event = ProgressEvent(report=report, phase=phase, message=message, current=current, total=total)
        self.events.append(event)
        self._last_message = message
        logger.debug("[%s] %s", report, message)

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # Observers must not break a report run
                logger.warning(f"Progress listener failed: {e}")

        for queue in self._queues:
            queue.put_nowait(event)
        return event

    def close(self) -> None:
        """Signal the end of the run to every stream consumer."""
        if self._closed:
            return
        self._closed = True
        for queue in self._queues:
            queue.put_nowait(_CLOSED)

    async def stream(self) -> AsyncIterator[ProgressEvent]:
        """Yield events as they are emitted until :meth:`close` is called."""
        queue: asyncio.Queue = asyncio.Queue()
        if self._closed:
            return
        self._queues.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            self._queues.remove(queue)

    def scoped(self, report: str) -> "ScopedProgress":
        """Bind a report name so callers only pass phase and message."""
        return ScopedProgress(self, report)


class ScopedProgress:
    """A :class:`ProgressChannel` view bound to one report or sheet name."""

    def __init__(self, channel: ProgressChannel, report: str):
        self.channel = channel
        self.report = report

    def __call__(
        self, phase: str, message: str, current: int = 0, total: int | None = None
    ) -> None:
        self.channel.emit(self.report, phase, message, current, total)

    def prefixed(self, prefix: str) -> "ScopedProgress":
        """Derive a view whose report name carries *prefix*, e.g. ``[2/11]``."""
        return ScopedProgress(self.channel, f"{self.report} {prefix}".strip())
