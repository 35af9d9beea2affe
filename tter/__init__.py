"""
tter: a typed, in-process event emitter.

This package contains:
- Events (handler registry with sync and async fan-out)
- Logging (structured logging configuration)
"""

from tter.events import (
    EmitAsyncOptions,
    EmitMode,
    EmitterError,
    EmitterOptions,
    EventEmitter,
    HandlerAggregateError,
    MaxHandlersExceededError,
    create_emitter,
    define_handler,
    define_handlers,
)

__version__ = "1.0.0"

__all__ = [
    "EmitAsyncOptions",
    "EmitMode",
    "EmitterError",
    "EmitterOptions",
    "EventEmitter",
    "HandlerAggregateError",
    "MaxHandlersExceededError",
    "create_emitter",
    "define_handler",
    "define_handlers",
]
