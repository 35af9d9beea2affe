"""
Event emitter for in-process pub/sub.

Provides:
- Per-instance handler registry keyed by any hashable event key
- Synchronous fan-out (``emit``)
- Asynchronous fan-out (``emit_async``), concurrent or sequential
- A per-key handler limit to surface leaking registrations

Example:
    from tter.events import create_emitter

    emitter = create_emitter()

    def on_created(user):
        print("created", user["name"])

    async def send_welcome(user):
        await mailer.send(user["email"])

    emitter.on("user.created", on_created)
    emitter.on("user.created", send_welcome)

    emitter.emit("user.created", {"name": "Ada", "email": "ada@example.com"})
    await emitter.emit_async("user.created", {"name": "Ada", "email": "ada@example.com"})
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import Awaitable, Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from tter.events.errors import HandlerAggregateError, MaxHandlersExceededError
from tter.logging_config import describe_handler, get_logger

logger = get_logger(__name__)


# =============================================================================
# Types & Enums
# =============================================================================

# Strings compare by value; sentinel objects (object()) compare by identity.
EventKey = Hashable

# Handler type: can be sync or async function
EventHandler = Callable[[Any], None] | Callable[[Any], Awaitable[None]]

H = TypeVar("H", bound=Callable[..., Any])
M = TypeVar("M", bound=Mapping[Any, Any])


class EmitMode(str, Enum):
    """Fan-out strategy for ``emit_async``."""

    CONCURRENT = "concurrent"
    SEQUENTIAL = "sequential"


# =============================================================================
# Options
# =============================================================================


@dataclass
class EmitterOptions:
    """
    Emitter-level configuration.

    Args:
        max_handlers: Maximum number of handlers per event key
    """

    max_handlers: int = 10

    def __post_init__(self):
        if isinstance(self.max_handlers, bool) or not isinstance(self.max_handlers, int):
            raise ValueError("max_handlers must be an integer")
        if self.max_handlers < 1:
            raise ValueError("max_handlers must be >= 1")


@dataclass(frozen=True)
class EmitAsyncOptions:
    """
    Per-call configuration for ``emit_async``.

    Args:
        mode: ``concurrent`` starts every handler at once and aggregates
            failures; ``sequential`` awaits handlers one by one and stops
            at the first failure
    """

    mode: EmitMode = EmitMode.CONCURRENT

    def __post_init__(self):
        try:
            object.__setattr__(self, "mode", EmitMode(self.mode))
        except ValueError:
            raise ValueError(
                f"mode must be one of {[m.value for m in EmitMode]}, got {self.mode!r}"
            ) from None


# =============================================================================
# Typed definition helpers
# =============================================================================


def define_handler(handler: H) -> H:
    """
    Define a handler for a single event key.

    Returns the handler unchanged; exists so call sites can annotate
    handlers next to where they are written.
    """
    return handler


def define_handlers(handlers: M) -> M:
    """
    Define a map of event keys to handler lists.

    Returns the mapping unchanged, ready to pass to ``create_emitter``.

    Example:
        handlers = define_handlers({
            "user.created": [lambda user: print("New user created:", user)],
        })
        emitter = create_emitter(handlers)
    """
    return handlers


# =============================================================================
# Event Emitter
# =============================================================================


class EventEmitter:
    """
    Registry of event handlers with sync and async fan-out.

    Handlers are identified by reference: registering the same callable
    twice for a key is a no-op, and ``off`` removes by identity. Every
    emission works on a snapshot of the handler list taken when it starts.

    Registry access is serialized with a lock; the lock is never held
    while handlers run.
    """

    def __init__(
        self,
        handlers: Mapping[EventKey, Iterable[EventHandler]] | None = None,
        options: EmitterOptions | None = None,
    ):
        """
        Initialize the emitter.

        Args:
            handlers: Initial handlers per event key, installed as given
                (the handler limit only applies to later ``on`` calls)
            options: Emitter options
        """
        self.options = options or EmitterOptions()
        self._handlers: dict[EventKey, list[EventHandler]] = {}
        self._lock = threading.RLock()
        self._running: set[asyncio.Future] = set()

        if handlers:
            for key, key_handlers in handlers.items():
                self._handlers[key] = list(key_handlers)

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def on(self, key: EventKey, handler: EventHandler) -> None:
        """
        Add a handler for the given event key.

        Args:
            key: Event key to listen for
            handler: Callable invoked with the payload when the event is emitted

        Raises:
            TypeError: If the handler is not callable
            MaxHandlersExceededError: If the key already has ``max_handlers`` handlers
        """
        if not callable(handler):
            raise TypeError("The handler must be callable")

        limit = self.options.max_handlers
        with self._lock:
            key_handlers = self._handlers.setdefault(key, [])
            if len(key_handlers) >= limit:
                logger.debug("handler_limit_reached", key=str(key), limit=limit)
                raise MaxHandlersExceededError(key, limit)
            if any(h is handler for h in key_handlers):
                logger.debug(
                    "handler_already_registered",
                    key=str(key),
                    handler=describe_handler(handler),
                )
                return
            key_handlers.append(handler)
            count = len(key_handlers)

        logger.debug(
            "handler_registered",
            key=str(key),
            handler=describe_handler(handler),
            count=count,
        )

    def off(self, key: EventKey, handler: EventHandler | None = None) -> None:
        """
        Remove handlers for the given event key.

        If ``handler`` is None, all handlers for the key are removed.
        Removing a handler that is not registered does nothing.

        Args:
            key: Event key to unregister from
            handler: Handler to remove
        """
        with self._lock:
            key_handlers = self._handlers.get(key)
            if key_handlers is None:
                return
            if handler is None:
                removed = len(key_handlers)
                del self._handlers[key]
            else:
                remaining = [h for h in key_handlers if h is not handler]
                removed = len(key_handlers) - len(remaining)
                if remaining:
                    self._handlers[key] = remaining
                else:
                    del self._handlers[key]

        if removed:
            logger.debug("handlers_removed", key=str(key), removed=removed)

    # -------------------------------------------------------------------------
    # Emitting
    # -------------------------------------------------------------------------

    def emit(self, key: EventKey, payload: Any = None) -> None:
        """
        Emit an event synchronously.

        Calls every handler for the key in registration order. A handler
        that raises stops the fan-out and the exception propagates.

        Async handlers do nothing here: the coroutine they return is
        closed before its body runs and an ``async_handler_skipped``
        warning is logged. Use ``emit_async`` for them.

        Args:
            key: Event key
            payload: Data passed to each handler
        """
        key_handlers = self._snapshot(key)
        if not key_handlers:
            return

        logger.debug("event_emitting", key=str(key), handlers=len(key_handlers))
        for handler in key_handlers:
            result = handler(payload)
            if inspect.iscoroutine(result):
                result.close()
                logger.warning(
                    "async_handler_skipped",
                    key=str(key),
                    handler=describe_handler(handler),
                    hint="use emit_async to await async handlers",
                )
        logger.debug("event_emitted", key=str(key))

    async def emit_async(
        self,
        key: EventKey,
        payload: Any = None,
        options: EmitAsyncOptions | None = None,
    ) -> None:
        """
        Emit an event asynchronously.

        Handlers run as tasks that outlive the caller: cancelling the
        awaiting task (directly, through ``asyncio.wait_for`` or a task
        group) stops the wait, not the handlers already started.

        Args:
            key: Event key
            payload: Data passed to each handler
            options: Emission options (concurrent by default)

        Raises:
            HandlerAggregateError: In concurrent mode, if any handler failed
            Exception: In sequential mode, the first handler failure, unwrapped
        """
        options = options or EmitAsyncOptions()
        key_handlers = self._snapshot(key)
        if not key_handlers:
            return

        logger.debug(
            "event_emitting_async",
            key=str(key),
            handlers=len(key_handlers),
            mode=options.mode.value,
        )

        if options.mode is EmitMode.SEQUENTIAL:
            await self._emit_sequential(key, key_handlers, payload)
        else:
            await self._emit_concurrent(key, key_handlers, payload)

        logger.debug("event_emitted_async", key=str(key), mode=options.mode.value)

    async def _emit_sequential(
        self,
        key: EventKey,
        key_handlers: list[EventHandler],
        payload: Any,
    ) -> None:
        for handler in key_handlers:
            task = self._launch(handler, payload)
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.done():
                    # caller gave up; the running handler finishes, the rest never start
                    task.add_done_callback(_abandoned_callback(key))
                raise
            except Exception as e:
                logger.debug(
                    "event_emit_async_failed",
                    key=str(key),
                    mode=EmitMode.SEQUENTIAL.value,
                    handler=describe_handler(handler),
                    error=repr(e),
                )
                raise

    async def _emit_concurrent(
        self,
        key: EventKey,
        key_handlers: list[EventHandler],
        payload: Any,
    ) -> None:
        tasks = [self._launch(handler, payload) for handler in key_handlers]
        # gather keeps argument order, so failures line up with registration order
        joined = asyncio.gather(*tasks, return_exceptions=True)
        try:
            results = await asyncio.shield(joined)
        except asyncio.CancelledError:
            if not joined.done():
                joined.add_done_callback(_abandoned_callback(key))
            raise

        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        errors = [result for result in results if isinstance(result, Exception)]
        if errors:
            logger.debug(
                "event_emit_async_failed",
                key=str(key),
                mode=EmitMode.CONCURRENT.value,
                failures=len(errors),
            )
            raise HandlerAggregateError(key, errors)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def handlers(self, key: EventKey) -> tuple[EventHandler, ...]:
        """Get the handlers registered for a key, in registration order."""
        return tuple(self._snapshot(key))

    def keys(self) -> tuple[EventKey, ...]:
        """Get the event keys that currently have handlers."""
        with self._lock:
            return tuple(key for key, key_handlers in self._handlers.items() if key_handlers)

    def get_stats(self) -> dict[str, Any]:
        """Get emitter statistics."""
        with self._lock:
            counts = [len(key_handlers) for key_handlers in self._handlers.values()]

        return {
            "events": sum(1 for count in counts if count),
            "total_handlers": sum(counts),
            "max_handlers": self.options.max_handlers,
        }

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key: object) -> bool:
        try:
            return bool(self._snapshot(key))
        except TypeError:
            # unhashable keys can never be registered
            return False

    def _launch(self, handler: EventHandler, payload: Any) -> asyncio.Future:
        task = asyncio.ensure_future(_invoke(handler, payload))
        # strong reference until done; the loop only keeps weak ones
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return task

    def _snapshot(self, key: EventKey) -> list[EventHandler]:
        with self._lock:
            return list(self._handlers.get(key, ()))


def _abandoned_callback(key: EventKey) -> Callable[[asyncio.Future], None]:
    """Build a done-callback that logs failures nobody is waiting for."""

    def _log_outcome(future: asyncio.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            failures = [error]
        else:
            failures = [r for r in future.result() or () if isinstance(r, BaseException)]
        if failures:
            logger.warning(
                "abandoned_handler_failed",
                key=str(key),
                failures=len(failures),
                errors=[repr(f) for f in failures],
            )

    return _log_outcome


async def _invoke(handler: EventHandler, payload: Any) -> None:
    """Call a handler and await its result when it is awaitable."""
    result = handler(payload)
    if inspect.isawaitable(result):
        await result


def create_emitter(
    handlers: Mapping[EventKey, Iterable[EventHandler]] | None = None,
    options: EmitterOptions | None = None,
) -> EventEmitter:
    """
    Create an event emitter.

    Args:
        handlers: Initial handlers per event key
        options: Emitter options

    Returns:
        A new EventEmitter with its own registry
    """
    return EventEmitter(handlers, options)
