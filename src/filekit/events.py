"""Lifecycle events fired around save and delete."""

import inspect
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from filekit.exceptions import ObserverError
from filekit.files import File, StoragePath
from filekit.observability import get_logger

logger = get_logger(__name__)


class StorageEventName(str, Enum):
    """Named lifecycle notifications."""

    BEFORE_SAVE = "beforeSave"
    AFTER_SAVE = "afterSave"
    BEFORE_DELETE = "beforeDelete"
    AFTER_DELETE = "afterDelete"


@dataclass(frozen=True)
class StorageEvent:
    """Event payload. Save events carry the file, delete events the path."""

    name: StorageEventName
    file: File | None = None
    path: StoragePath | None = None


EventHandler = Callable[[StorageEvent], Awaitable[None] | None]


class EventBus:
    """Synchronous in-process observer registry.

    Handlers run in registration order. Coroutine handlers are awaited
    before the next handler runs.
    """

    def __init__(self) -> None:
        self._handlers: dict[StorageEventName, list[EventHandler]] = {
            name: [] for name in StorageEventName
        }

    def on(self, name: StorageEventName | str, handler: EventHandler) -> None:
        """Register a handler for a notification."""
        self._handlers[StorageEventName(name)].append(handler)

    def off(self, name: StorageEventName | str, handler: EventHandler) -> None:
        """Remove a handler. No-op if it was never registered."""
        handlers = self._handlers[StorageEventName(name)]
        if handler in handlers:
            handlers.remove(handler)

    def handlers(self, name: StorageEventName | str) -> list[EventHandler]:
        """Registered handlers for a notification, in call order."""
        return list(self._handlers[StorageEventName(name)])

    async def emit(self, event: StorageEvent) -> None:
        """Deliver an event to every handler registered for it.

        Raises:
            ObserverError: If a handler raises. Remaining handlers are skipped.
        """
        # Handlers may unsubscribe while the event is being delivered
        for handler in list(self._handlers[event.name]):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    context={"event": event.name.value},
                    error=e,
                )
                raise ObserverError(
                    f"Handler for {event.name.value} failed: {e}"
                ) from e

    async def before_save(self, file: File) -> None:
        await self.emit(StorageEvent(StorageEventName.BEFORE_SAVE, file=file))

    async def after_save(self, file: File) -> None:
        await self.emit(StorageEvent(StorageEventName.AFTER_SAVE, file=file))

    async def before_delete(self, path: StoragePath) -> None:
        await self.emit(StorageEvent(StorageEventName.BEFORE_DELETE, path=path))

    async def after_delete(self, path: StoragePath) -> None:
        await self.emit(StorageEvent(StorageEventName.AFTER_DELETE, path=path))
