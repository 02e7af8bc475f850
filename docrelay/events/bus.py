"""Command Bus - in-process event dispatch for incoming commands.

Decouples "a command document arrived" from "something reacts to it".
The subscription handler, hydration, and application code all observe the
same command stream by registering listeners here.

Semantics:
- Listeners are invoked synchronously, in registration order, once per
  emitted payload.
- A listener that raises is logged and skipped; the remaining listeners
  still run.
- A listener that returns an awaitable has it scheduled as a task on the
  running loop. The task is tracked so ``drain()`` can await it, and its
  failure is logged when it completes.

Usage:
    bus = CommandBus()
    bus.subscribe(EVENT_COMMAND, lambda command: print(command.command))
    bus.emit(EVENT_COMMAND, parse_command(document))
"""

import asyncio
import inspect
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from docrelay.logging import get_component_logger
from docrelay.protocols import LoggerProtocol

EVENT_COMMAND = "command"
EVENT_SUBSCRIPTION = "subscription"

# Listeners may be plain callables or return an awaitable
Listener = Callable[[Any], Any]


def _listener_name(listener: Listener) -> str:
    return getattr(listener, "__qualname__", None) or repr(listener)


class CommandBus:
    """Ordered listener lists keyed by event name, with isolated failures."""

    def __init__(self, logger: Optional[LoggerProtocol] = None):
        self._listeners: Dict[str, List[Listener]] = {}
        self._pending: Set[asyncio.Future] = set()
        self._logger = get_component_logger("CommandBus", logger)

    def subscribe(self, event_name: str, listener: Listener) -> None:
        """Append a listener for an event.

        The same callable may be added more than once; it is then invoked
        once per registration.
        """
        self._listeners.setdefault(event_name, []).append(listener)
        self._logger.debug(
            "command_bus_subscribed",
            event=event_name,
            listener=_listener_name(listener),
        )

    def unsubscribe(self, event_name: str, listener: Listener) -> bool:
        """Remove the first registration of a listener.

        Returns:
            True if the listener was found and removed
        """
        listeners = self._listeners.get(event_name)
        if not listeners:
            return False
        try:
            listeners.remove(listener)
            return True
        except ValueError:
            return False

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))

    def emit(self, event_name: str, payload: Any) -> int:
        """Invoke every listener of ``event_name`` with ``payload``.

        Never raises because of a listener.

        Returns:
            Number of listeners that returned without raising
        """
        # Snapshot: listeners added while emitting only see later events
        listeners = list(self._listeners.get(event_name, ()))
        invoked = 0

        for listener in listeners:
            try:
                result = listener(payload)
            except Exception as e:
                self._logger.error(
                    "command_bus_listener_error",
                    event=event_name,
                    listener=_listener_name(listener),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            invoked += 1
            if inspect.isawaitable(result):
                self._track(event_name, listener, result)

        return invoked

    def _track(self, event_name: str, listener: Listener, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._logger.warning(
                "command_bus_no_event_loop",
                event=event_name,
                listener=_listener_name(listener),
            )
            return

        future = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(future)
        future.add_done_callback(partial(self._on_done, event_name, listener))

    def _on_done(self, event_name: str, listener: Listener, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.error(
                "command_bus_listener_error",
                event=event_name,
                listener=_listener_name(listener),
                error=str(error),
                error_type=type(error).__name__,
            )

    @property
    def pending(self) -> int:
        """Number of listener tasks still running."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every tracked listener task has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def clear(self) -> None:
        """Remove all listeners (for testing)."""
        self._listeners.clear()


__all__ = [
    "EVENT_COMMAND",
    "EVENT_SUBSCRIPTION",
    "CommandBus",
    "Listener",
]
