"""
Per-subscription delivery: pending queue, in-flight table, listener registry and
the ack/nack state machine.

Envelope states: PENDING -> DELIVERED -> ACKED, or DELIVERED -> PENDING on nack
(delivery_attempt + 1). Each subscription pins one dispatch loop: the loop it
was created on, or else the first running loop that touches it. Publishers on
other threads or loops only schedule work onto it with call_soon_threadsafe, so
listeners always run on the pinned loop and never inside the publisher's call
stack. The pin moves only when the pinned loop has been closed.
"""

import asyncio
import inspect
import itertools
import random
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Set

from mockpubsub.message import Message, ReceivedMessage
from mockpubsub.names import ResourceName
from mockpubsub.observability import Metrics, get_logger
from mockpubsub.observability.metrics import (
    LISTENER_ERRORS,
    MESSAGES_ACKED,
    MESSAGES_DELIVERED,
    MESSAGES_NACKED,
)

MESSAGE_EVENT = "message"
ERROR_EVENT = "error"

# Topic name reported by subscriptions whose topic was deleted.
DELETED_TOPIC = "_deleted-topic_"

Handler = Callable[..., Any]
ListenerSelector = Callable[[Sequence[Handler]], Handler]


class DeliveryState(Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    ACKED = "acked"


@dataclass
class Envelope:
    """One subscription's copy of a published message and its delivery state."""

    message: Message
    delivery_attempt: int = 1
    state: DeliveryState = DeliveryState.PENDING
    ack_id: Optional[str] = None


class RandomSelector:
    """Listener selection policy: uniform random choice over the current "message" listeners."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def __call__(self, handlers: Sequence[Handler]) -> Handler:
        return self._rng.choice(list(handlers))


class SubscriptionQueue:
    """State behind one subscription. All queue and listener mutations happen under one lock."""

    def __init__(
        self,
        name: ResourceName,
        topic_name: str,
        metrics: Metrics,
        selector: Optional[ListenerSelector] = None,
    ) -> None:
        self._name = name
        self._topic_name = topic_name
        self._metrics = metrics
        self._selector = selector or RandomSelector()
        self._lock = threading.Lock()
        self._pending: Deque[Envelope] = deque()
        self._in_flight: Dict[str, Envelope] = {}
        self._listeners: Dict[str, List[Handler]] = {}
        self._ack_ids = itertools.count(1)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._dispatch_scheduled = False
        self._closed = False
        self._tasks: Set[asyncio.Future] = set()
        self._logger = get_logger("mockpubsub.subscription")
        self._pin_loop()

    @property
    def name(self) -> ResourceName:
        return self._name

    @property
    def topic_name(self) -> str:
        return self._topic_name

    @property
    def detached(self) -> bool:
        return self._topic_name == DELETED_TOPIC

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def detach(self) -> None:
        """Called when the topic is deleted: keep the queue, stop receiving new messages."""
        with self._lock:
            self._topic_name = DELETED_TOPIC
        self._logger.info("detached", extra={"subscription": self._name.full_name})

    # ---- Listeners ----

    def add_listener(self, event: str, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError(f"listener for {event!r} must be callable, got {type(handler).__name__}")
        with self._lock:
            self._listeners.setdefault(event, []).append(handler)
        self._logger.debug(
            "listener_added",
            extra={"subscription": self._name.full_name, "event": event},
        )
        if event == MESSAGE_EVENT:
            self._schedule_dispatch()

    def remove_listener(self, event: str, handler: Handler) -> bool:
        """Remove one registration of handler for event. Returns True if it was registered."""
        with self._lock:
            handlers = self._listeners.get(event)
            if not handlers or handler not in handlers:
                return False
            handlers.remove(handler)
            if not handlers:
                del self._listeners[event]
        return True

    def remove_all_listeners(self, event: Optional[str] = None) -> None:
        """Clear handlers for one event kind, or for every kind. Queued messages are kept."""
        with self._lock:
            if event is None:
                self._listeners.clear()
            else:
                self._listeners.pop(event, None)
        self._logger.debug(
            "listeners_removed",
            extra={"subscription": self._name.full_name, "event": event},
        )

    def listener_count(self, event: str) -> int:
        with self._lock:
            return len(self._listeners.get(event, ()))

    # ---- Queue / state machine ----

    def enqueue(self, message: Message) -> None:
        """Append a fresh PENDING envelope of message to the tail of the queue."""
        with self._lock:
            if self._closed:
                return
            self._pending.append(Envelope(message=message))
        self._schedule_dispatch()

    def ack(self, ack_id: str) -> bool:
        """DELIVERED -> ACKED. Returns False (no-op) if ack_id is not in flight."""
        with self._lock:
            envelope = self._in_flight.pop(ack_id, None)
            if envelope is not None:
                envelope.state = DeliveryState.ACKED
        if envelope is None:
            self._logger.debug(
                "ack_ignored",
                extra={"subscription": self._name.full_name, "ack_id": ack_id},
            )
            return False
        self._metrics.increment(MESSAGES_ACKED)
        self._logger.info(
            "acked",
            extra={
                "subscription": self._name.full_name,
                "message_id": envelope.message.message_id,
                "delivery_attempt": envelope.delivery_attempt,
            },
        )
        return True

    def nack(self, ack_id: str) -> bool:
        """DELIVERED -> PENDING at the head of the queue. Returns False (no-op) if ack_id is not in flight."""
        with self._lock:
            envelope = self._in_flight.pop(ack_id, None)
            if envelope is not None:
                envelope.state = DeliveryState.PENDING
                envelope.ack_id = None
                envelope.delivery_attempt += 1
                self._pending.appendleft(envelope)
        if envelope is None:
            self._logger.debug(
                "nack_ignored",
                extra={"subscription": self._name.full_name, "ack_id": ack_id},
            )
            return False
        self._metrics.increment(MESSAGES_NACKED)
        self._logger.info(
            "nacked",
            extra={
                "subscription": self._name.full_name,
                "message_id": envelope.message.message_id,
                "delivery_attempt": envelope.delivery_attempt,
            },
        )
        self._schedule_dispatch()
        return True

    def close(self) -> int:
        """Discard queued and in-flight messages and all listeners. Returns the number of messages dropped."""
        with self._lock:
            self._closed = True
            dropped = len(self._pending) + len(self._in_flight)
            self._pending.clear()
            self._in_flight.clear()
            self._listeners.clear()
        self._logger.info(
            "closed",
            extra={"subscription": self._name.full_name, "dropped": dropped},
        )
        return dropped

    def outstanding_tasks(self) -> List[asyncio.Future]:
        """Listener coroutines still running."""
        return [t for t in self._tasks if not t.done()]

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "topic": self._topic_name,
                "pending": len(self._pending),
                "in_flight": len(self._in_flight),
                "listeners": {event: len(h) for event, h in self._listeners.items()},
            }

    # ---- Dispatch ----

    def _pin_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        """Return the dispatch loop, pinning the running loop only if none is pinned or the pinned one is closed."""
        with self._lock:
            if self._loop is not None and self._loop.is_closed():
                self._loop = None
            if self._loop is None:
                try:
                    self._loop = asyncio.get_running_loop()
                except RuntimeError:
                    pass
            return self._loop

    def _schedule_dispatch(self) -> None:
        """Schedule one dispatch pass on the pinned loop if there is work and none is already scheduled."""
        loop = self._pin_loop()
        if loop is None:
            # Picked up by the next publish or listener registration made on a running loop.
            return
        with self._lock:
            if (
                self._dispatch_scheduled
                or self._closed
                or not self._pending
                or not self._listeners.get(MESSAGE_EVENT)
            ):
                return
            self._dispatch_scheduled = True
        try:
            loop.call_soon_threadsafe(self._dispatch)
        except RuntimeError:
            # Pinned loop closed after the check; the next touch re-pins.
            with self._lock:
                self._dispatch_scheduled = False

    def _dispatch(self) -> None:
        """Deliver at most the envelopes pending when the pass started, head first."""
        with self._lock:
            self._dispatch_scheduled = False
            budget = len(self._pending)
        for _ in range(budget):
            with self._lock:
                handlers = list(self._listeners.get(MESSAGE_EVENT, ()))
                if self._closed or not handlers or not self._pending:
                    return
                envelope = self._pending.popleft()
                envelope.state = DeliveryState.DELIVERED
                envelope.ack_id = f"{self._name.short_name}-{next(self._ack_ids)}"
                self._in_flight[envelope.ack_id] = envelope
                received = ReceivedMessage(envelope, self)
            handler = self._selector(handlers)
            self._metrics.increment(MESSAGES_DELIVERED)
            self._logger.info(
                "delivered",
                extra={
                    "subscription": self._name.full_name,
                    "message_id": received.message_id,
                    "delivery_attempt": received.delivery_attempt,
                    "listener_count": len(handlers),
                },
            )
            self._invoke(handler, received)

    def _invoke(self, handler: Handler, received: ReceivedMessage) -> None:
        try:
            result = handler(received)
        except Exception as e:
            self._listener_failed(e, received)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda t: self._task_done(t, received))

    def _task_done(self, task: asyncio.Future, received: ReceivedMessage) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._listener_failed(exc, received)

    def _listener_failed(self, exc: BaseException, received: ReceivedMessage) -> None:
        """Log a failing "message" listener and pass the exception to "error" listeners. The delivery stays in flight."""
        self._metrics.increment(LISTENER_ERRORS)
        self._logger.error(
            "listener_failed",
            exc_info=exc,
            extra={
                "subscription": self._name.full_name,
                "message_id": received.message_id,
                "error": str(exc),
            },
        )
        with self._lock:
            handlers = list(self._listeners.get(ERROR_EVENT, ()))
        loop = self._loop
        if loop is None:
            return
        for handler in handlers:
            loop.call_soon_threadsafe(self._notify_error, handler, exc)

    def _notify_error(self, handler: Handler, exc: BaseException) -> None:
        try:
            result = handler(exc)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._error_task_done)
        except Exception:
            self._logger.exception(
                "error_listener_failed",
                extra={"subscription": self._name.full_name},
            )

    def _error_task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._logger.error(
                "error_listener_failed",
                exc_info=task.exception(),
                extra={"subscription": self._name.full_name},
            )
