"""
Shared-slot context store.

Keeps the "current" value in one instance attribute shared by every
caller, so the last run() wins. Under concurrent tasks, any read after
a suspension point may return another task's value. Kept as the
reproduction target for the regression scenario; never use it to carry
per-request state.
"""

from typing import Any, Callable

# Slot state before the first run(); a bound None stays a real value.
_EMPTY = object()


class SharedSlotStore:
    """Last-writer-wins store with the same surface as ContextStore."""

    def __init__(self):
        self.current_value: Any = _EMPTY

    def run(self, value: Any, body: Callable[..., Any], *args, **kwargs) -> Any:
        self.current_value = value
        return body(*args, **kwargs)

    def current(self, default: Any = None) -> Any:
        if self.current_value is _EMPTY:
            return default
        return self.current_value
