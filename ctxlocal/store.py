"""
Context-local storage for asyncio.

A ContextStore binds a value to the logical extent of a call and keeps
that binding attached to every continuation spawned from it:

- Tasks created inside the extent
- Callbacks scheduled with call_soon / call_later
- Done-callbacks attached to futures
- Nested run() calls that do not rebind

Each run() executes its body in a private copy of the caller's
contextvars.Context, so sibling tasks interleaved on the same event
loop never observe each other's value.
"""

import asyncio
import contextvars
import logging
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator

logger = logging.getLogger(__name__)

# Marks an extent entered through exit(); never returned to callers.
_UNBOUND = object()


class ContextStore:
    """Per-task context value, isolated across concurrent asyncio tasks.

    Usage:
        store = ContextStore("query")

        async def handle():
            query = store.current()
            ...

        await store.run({"queryId": 1}, handle)
    """

    def __init__(self, name: str = "ctxlocal"):
        self.name = name
        self._var: contextvars.ContextVar = contextvars.ContextVar(name)

    def __repr__(self) -> str:
        return f"ContextStore(name={self.name!r})"

    # -- Reading --------------------------------------------------------------

    def current(self, default: Any = None) -> Any:
        """Return the value bound for the calling continuation.

        Args:
            default: Returned when no run() extent encloses the caller.
        """
        value = self._var.get(_UNBOUND)
        if value is _UNBOUND:
            return default
        return value

    # -- Binding --------------------------------------------------------------

    def run(self, value: Any, body: Callable[..., Any], *args, **kwargs) -> Any:
        """Run *body* with *value* bound for its whole logical extent.

        A synchronous body runs immediately and its result (or exception)
        is passed straight through. A body returning a coroutine is
        scheduled as a task bound to the new frame; the task is returned
        so the caller can await the body's result.

        Raises:
            RuntimeError: If *body* returns a coroutine and no event loop
                is running.
        """
        frame = contextvars.copy_context()
        frame.run(self._var.set, value)
        logger.debug(f"{self.name}: entering frame for {value!r}")
        return self._enter(frame, body, args, kwargs)

    def exit(self, body: Callable[..., Any], *args, **kwargs) -> Any:
        """Run *body* with no value bound; current() returns the default inside."""
        frame = contextvars.copy_context()
        frame.run(self._var.set, _UNBOUND)
        return self._enter(frame, body, args, kwargs)

    @contextmanager
    def bind(self, value: Any) -> Iterator[Any]:
        """Bind *value* for the duration of a ``with`` block in the current task.

        The previous binding is restored on exit, including on error.
        """
        token = self._var.set(value)
        try:
            yield value
        finally:
            self._var.reset(token)

    def wrap(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Snapshot the calling frame and return *fn* pinned to it.

        The returned callable sees the snapshot's value no matter which
        task or callback later invokes it.
        """
        snapshot = contextvars.copy_context()

        @wraps(fn)
        def bound(*args, **kwargs):
            # A fresh copy per call allows re-entrant and overlapping calls.
            return snapshot.copy().run(fn, *args, **kwargs)

        return bound

    # -- Internals ------------------------------------------------------------

    def _enter(
        self,
        frame: contextvars.Context,
        body: Callable[..., Any],
        args: tuple,
        kwargs: dict,
    ) -> Any:
        result = frame.run(body, *args, **kwargs)
        if not asyncio.iscoroutine(result):
            return result

        try:
            return asyncio.create_task(
                result, name=self._task_name(), context=frame
            )
        except RuntimeError:
            result.close()
            raise

    def _task_name(self) -> str:
        return f"{self.name}-frame"
