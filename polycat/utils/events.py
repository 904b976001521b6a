"""Event-driven diagnostics for polycat.

Failures that the locale subsystem swallows are published here (and logged)
so operators keep visibility without the failure reaching the application.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from polycat.utils.logging_config import get_logger


class EventPriority(Enum):
    """Event priority levels."""

    LOW = 1
    NORMAL = 2
    HIGH = 3
    CRITICAL = 4


class EventType(Enum):
    """Built-in event types."""

    # Runtime lifecycle
    LOCALE_CHANGED = "locale_changed"
    CATALOGS_RELOADED = "catalogs_reloaded"
    LOAD_SUPERSEDED = "load_superseded"

    # Catalog loading diagnostics
    CATALOG_INDEX_UNAVAILABLE = "catalog_index_unavailable"
    CATALOG_FETCH_FAILED = "catalog_fetch_failed"
    CATALOG_SUBSTITUTED = "catalog_substituted"

    # Collaborator diagnostics
    AUTH_STATUS_FAILED = "auth_status_failed"
    PREFERENCE_WRITE_FAILED = "preference_write_failed"

    # Document surface
    TITLE_UPDATED = "title_updated"


@dataclass
class Event:
    """Base event class."""

    event_type: str = ""
    timestamp: float = field(default_factory=time.time)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    priority: EventPriority = EventPriority.NORMAL
    source: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class EventHandler(ABC):
    """Base class for event handlers."""

    def __init__(self, name: str):
        """Initialize event handler."""
        self.name = name
        self.logger = get_logger(f"event_handler.{name}")

    @abstractmethod
    async def handle(self, event: Event) -> None:
        """Handle an event."""

    def can_handle(self, _event: Event) -> bool:
        """Check if this handler can handle the event."""
        return True


class CallbackHandler(EventHandler):
    """Adapts a plain coroutine function into an event handler."""

    def __init__(self, name: str, callback: Callable[[Event], Awaitable[None]]):
        super().__init__(name)
        self._callback = callback

    async def handle(self, event: Event) -> None:
        await self._callback(event)


class EventBus:
    """Event bus for managing events and handlers."""

    def __init__(
        self,
        max_queue_size: int = 1000,
        batch_size: int = 50,
        batch_timeout: float = 0.05,
        max_replay_events: int = 500,
    ):
        """Initialize event bus.

        Args:
            max_queue_size: Maximum size of event queue
            batch_size: Maximum number of events to process per batch
            batch_timeout: Timeout in seconds to wait when collecting a batch
            max_replay_events: Number of recent events kept for replay

        """
        self.max_queue_size = max_queue_size
        self.handlers: dict[str, list[EventHandler]] = {}
        self.event_queue: asyncio.Queue[Event] | None = None
        self.replay_buffer: list[Event] = []
        self.max_replay_events = max_replay_events
        self.running = False
        self.logger = get_logger(__name__)
        self._task: asyncio.Task | None = None

        self.batch_size = batch_size
        self.batch_timeout = batch_timeout

        self.stats = {
            "events_emitted": 0,
            "events_processed": 0,
            "events_dropped": 0,
            "handlers_registered": 0,
        }

    def register_handler(self, event_type: str, handler: EventHandler) -> None:
        """Register an event handler.

        Args:
            event_type: Type of event to handle, or ``"*"`` for every event
            handler: Handler instance

        """
        self.handlers.setdefault(event_type, []).append(handler)
        self.stats["handlers_registered"] += 1
        self.logger.debug(
            "Registered handler '%s' for event type '%s'",
            handler.name,
            event_type,
        )

    def unregister_handler(self, event_type: str, handler: EventHandler) -> None:
        """Unregister an event handler."""
        handlers = self.handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            self.logger.debug(
                "Unregistered handler '%s' for event type '%s'",
                handler.name,
                event_type,
            )

    async def emit(self, event: Event) -> None:
        """Emit an event.

        Events are always recorded in the replay buffer; they are queued for
        handlers only while the bus is running.
        """
        self.stats["events_emitted"] += 1
        self.replay_buffer.append(event)
        if len(self.replay_buffer) > self.max_replay_events:
            self.replay_buffer.pop(0)

        if not self.running or self.event_queue is None:
            return

        try:
            self.event_queue.put_nowait(event)
        except asyncio.QueueFull:
            self.stats["events_dropped"] += 1
            self.logger.warning(
                "Event queue full, dropping event: %s (priority=%s)",
                event.event_type,
                event.priority.name,
            )

    async def start(self) -> None:
        """Start the event bus."""
        if self.running:
            return
        self.event_queue = asyncio.Queue(maxsize=self.max_queue_size)
        self.running = True
        self._task = asyncio.create_task(self._process_events())
        self.logger.debug("Event bus started")

    async def stop(self) -> None:
        """Stop the event bus, draining events already queued."""
        if not self.running:
            return
        self.running = False
        if self.event_queue is not None:
            pending: list[Event] = []
            while not self.event_queue.empty():
                pending.append(self.event_queue.get_nowait())
            for event in pending:
                await self._handle_event(event)
            self.stats["events_processed"] += len(pending)
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self.logger.debug("Event bus stopped")

    async def _process_events(self) -> None:
        """Process events from the queue in batches."""
        assert self.event_queue is not None
        while self.running:
            try:
                batch: list[Event] = []
                try:
                    first_event = await asyncio.wait_for(
                        self.event_queue.get(),
                        timeout=self.batch_timeout,
                    )
                    batch.append(first_event)
                except asyncio.TimeoutError:
                    continue

                while len(batch) < self.batch_size:
                    try:
                        batch.append(self.event_queue.get_nowait())
                    except asyncio.QueueEmpty:
                        break

                await asyncio.gather(
                    *(self._handle_event(event) for event in batch),
                    return_exceptions=True,
                )
                self.stats["events_processed"] += len(batch)

            except asyncio.CancelledError:
                break
            except Exception:
                self.logger.exception("Error processing event batch")

    async def _handle_event(self, event: Event) -> None:
        """Handle a single event."""
        handlers = self.handlers.get(event.event_type, []) + self.handlers.get("*", [])
        processable = [h for h in handlers if h.can_handle(event)]
        if not processable:
            self.logger.debug("No handlers registered for event: %s", event.event_type)
            return
        await asyncio.gather(
            *(self._handle_with_handler(event, handler) for handler in processable),
        )

    async def _handle_with_handler(self, event: Event, handler: EventHandler) -> None:
        """Handle event with a specific handler."""
        try:
            await handler.handle(event)
        except Exception:
            self.logger.exception(
                "Handler '%s' failed for event '%s'",
                handler.name,
                event.event_type,
            )

    def get_replay_events(
        self,
        event_type: str | None = None,
        limit: int = 100,
    ) -> list[Event]:
        """Get events from replay buffer.

        Args:
            event_type: Filter by event type
            limit: Maximum number of events to return

        """
        events = self.replay_buffer
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events[-limit:] if limit > 0 else list(events)

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics."""
        return {
            "running": self.running,
            "queue_size": self.event_queue.qsize() if self.event_queue else 0,
            "replay_buffer_size": len(self.replay_buffer),
            **self.stats,
        }


async def publish(
    bus: EventBus | None,
    event_type: EventType,
    source: str,
    priority: EventPriority = EventPriority.NORMAL,
    **data: Any,
) -> None:
    """Emit an event on ``bus`` if one is configured.

    Publishing is diagnostics only; a failing bus is logged and ignored.
    """
    if bus is None:
        return
    try:
        await bus.emit(
            Event(
                event_type=event_type.value,
                priority=priority,
                source=source,
                data=data,
            )
        )
    except Exception:
        get_logger(__name__).exception("Failed to publish %s", event_type.value)
