"""
Event emitter module.

Provides a per-instance handler registry with synchronous and
asynchronous (concurrent or sequential) fan-out.
"""

from tter.events.emitter import (
    EmitAsyncOptions,
    EmitMode,
    EmitterOptions,
    EventEmitter,
    EventHandler,
    EventKey,
    create_emitter,
    define_handler,
    define_handlers,
)
from tter.events.errors import (
    EmitterError,
    HandlerAggregateError,
    MaxHandlersExceededError,
)

__all__ = [
    "EmitAsyncOptions",
    "EmitMode",
    "EmitterError",
    "EmitterOptions",
    "EventEmitter",
    "EventHandler",
    "EventKey",
    "HandlerAggregateError",
    "MaxHandlersExceededError",
    "create_emitter",
    "define_handler",
    "define_handlers",
]
