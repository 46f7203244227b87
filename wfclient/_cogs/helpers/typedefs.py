"""
Rudimentary type [re-]definitions for mypy & the runtime.

Some StdLib classes are generics in the type-sheds, but not at runtime.
Examples: logging.LoggerAdapter. They are defined here in a reusable way.
Plus some common plain type definitions used across the codebase.
"""
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# As publicly exposed: we only promise that it is based on one of the built-in loggable classes.
Logger = Union[logging.Logger, LoggerAdapter]

# Callbacks provided by the users: either sync or async, the result is ignored.
SyncOrAsyncCallback = Callable[..., Union[None, Awaitable[None]]]
