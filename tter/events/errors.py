"""
Exceptions raised by the event emitter.

Handler failures raised during ``emit`` and sequential ``emit_async`` are
propagated unchanged; only the types below are created by the emitter.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence


class EmitterError(Exception):
    """Base class for errors created by the event emitter."""


class MaxHandlersExceededError(EmitterError):
    """Raised when registering a handler on a key that is already full."""

    def __init__(
        self,
        key: Hashable,
        limit: int,
        message: str | None = None,
    ):
        self.key = key
        self.limit = limit
        self.message = message or (
            f"Max handlers limit ({limit}) reached for the event \"{key!s}\". "
            "This may indicate a memory leak, perhaps due to adding a newly "
            "created function as handler within middleware or a request handler. "
            "Check your code or consider increasing the limit using "
            "EmitterOptions.max_handlers."
        )
        super().__init__(self.message)


class HandlerAggregateError(ExceptionGroup):
    """
    Raised by a concurrent ``emit_async`` when one or more handlers failed.

    ``exceptions`` holds every failure in handler registration order,
    regardless of the order in which the handlers finished.
    """

    def __new__(cls, key: Hashable, errors: Sequence[Exception]):
        self = super().__new__(
            cls,
            f"{len(errors)} handler(s) for event {key!s} encountered errors",
            list(errors),
        )
        self.key = key
        return self

    def derive(self, excs):
        return HandlerAggregateError(self.key, excs)
