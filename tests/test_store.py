"""Tests for the context store."""

import asyncio

import pytest

from ctxlocal.store import ContextStore


class TestCurrent:
    """Reads outside and inside an extent."""

    def test_absent_outside_extent(self, store):
        assert store.current() is None

    def test_custom_default(self, store):
        sentinel = object()
        assert store.current(sentinel) is sentinel

    def test_stores_are_independent(self):
        a = ContextStore("a")
        b = ContextStore("b")
        assert a.run(1, lambda: (a.current(), b.current())) == (1, None)

    def test_bound_none_wins_over_default(self, store):
        assert store.run(None, store.current, "fallback") is None


class TestSyncRun:
    """run() with a synchronous body."""

    def test_returns_body_result(self, store):
        assert store.run("q1", lambda: store.current()) == "q1"

    def test_passes_arguments(self, store):
        def body(a, b=0):
            return store.current(), a + b

        assert store.run("q1", body, 1, b=2) == ("q1", 3)

    def test_reverts_after_body(self, store):
        store.run("q1", store.current)
        assert store.current() is None

    def test_exception_propagates_and_reverts(self, store):
        def body():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            store.run("q1", body)
        assert store.current() is None

    def test_nested_sync_restores_outer(self, store):
        seen = []

        def outer():
            seen.append(store.current())
            seen.append(store.run("inner", store.current))
            seen.append(store.current())

        store.run("outer", outer)
        assert seen == ["outer", "inner", "outer"]

    def test_sequential_runs_do_not_leak(self, store):
        assert store.run("q1", store.current) == "q1"
        assert store.current() is None
        assert store.run("q1", store.current) == "q1"
        assert store.current() is None

    def test_async_body_without_loop_raises(self, store):
        async def body():
            return store.current()

        with pytest.raises(RuntimeError):
            store.run("q1", body)


class TestAsyncRun:
    """run() with a coroutine body."""

    @pytest.mark.asyncio
    async def test_returns_task(self, store):
        async def body():
            await asyncio.sleep(0)
            return store.current()

        task = store.run("q1", body)
        assert isinstance(task, asyncio.Task)
        assert await task == "q1"
        assert store.current() is None

    @pytest.mark.asyncio
    async def test_exception_propagates(self, store):
        async def body():
            await asyncio.sleep(0)
            raise KeyError("missing")

        with pytest.raises(KeyError):
            await store.run("q1", body)
        assert store.current() is None

    @pytest.mark.asyncio
    async def test_nested_restores_outer_across_suspension(self, store):
        seen = []

        async def inner():
            await asyncio.sleep(0)
            seen.append(store.current())

        async def outer():
            seen.append(store.current())
            await store.run("inner", inner)
            await asyncio.sleep(0)
            seen.append(store.current())

        await store.run("outer", outer)
        assert seen == ["outer", "inner", "outer"]

    @pytest.mark.asyncio
    async def test_inner_run_without_rebind_inherits(self, store):
        async def child():
            await asyncio.sleep(0)
            return store.current()

        async def parent():
            return await asyncio.create_task(child())

        assert await store.run("parent", parent) == "parent"

    @pytest.mark.asyncio
    async def test_interleaved_tasks_are_isolated(self, store):
        async def body(i):
            seen = []
            for _ in range(5):
                await asyncio.sleep(0)
                seen.append(store.current())
            return seen

        results = await asyncio.gather(*(store.run(i, body, i) for i in range(20)))
        for i, seen in enumerate(results):
            assert seen == [i] * 5

    @pytest.mark.asyncio
    async def test_other_awaitable_returned_as_is(self, store):
        loop = asyncio.get_running_loop()
        fut = loop.create_future()
        assert store.run("q1", lambda: fut) is fut
        fut.set_result(1)
        assert await fut == 1


class TestCallbackPropagation:
    """Deferred callbacks registered inside an extent keep its value."""

    @pytest.mark.asyncio
    async def test_call_soon(self, store):
        loop = asyncio.get_running_loop()
        seen = loop.create_future()

        store.run("q1", loop.call_soon, lambda: seen.set_result(store.current()))
        assert await seen == "q1"

    @pytest.mark.asyncio
    async def test_call_later(self, store):
        loop = asyncio.get_running_loop()
        seen = loop.create_future()

        store.run("q1", loop.call_later, 0.001, lambda: seen.set_result(store.current()))
        assert await seen == "q1"

    @pytest.mark.asyncio
    async def test_done_callback(self, store):
        loop = asyncio.get_running_loop()
        source = loop.create_future()
        seen = loop.create_future()

        store.run("q1", source.add_done_callback, lambda f: seen.set_result(store.current()))
        source.set_result(None)
        assert await seen == "q1"
        assert store.current() is None


class TestExit:
    """exit() hides the binding for its body."""

    def test_exit_inside_run(self, store):
        def body():
            return store.exit(store.current), store.current()

        assert store.run("q1", body) == (None, "q1")

    @pytest.mark.asyncio
    async def test_exit_async(self, store):
        async def hidden():
            await asyncio.sleep(0)
            return store.current()

        async def body():
            return await store.exit(hidden), store.current()

        assert await store.run("q1", body) == (None, "q1")


class TestBind:
    """bind() as a with-block."""

    def test_bind_and_restore(self, store):
        with store.bind("q1") as value:
            assert value == "q1"
            assert store.current() == "q1"
        assert store.current() is None

    def test_bind_restores_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.bind("q1"):
                raise RuntimeError("fail")
        assert store.current() is None

    def test_bind_nested_in_run(self, store):
        def body():
            with store.bind("inner"):
                inner = store.current()
            return inner, store.current()

        assert store.run("outer", body) == ("inner", "outer")

    @pytest.mark.asyncio
    async def test_bind_within_task_is_private(self, store):
        async def binder():
            with store.bind("mine"):
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                return store.current()

        async def observer():
            await asyncio.sleep(0)
            return store.current()

        assert await asyncio.gather(binder(), observer()) == ["mine", None]


class TestWrap:
    """wrap() pins a callable to the frame it was created in."""

    def test_wrapped_sees_snapshot(self, store):
        fn = store.run("q1", store.wrap, store.current)
        assert fn() == "q1"
        assert store.run("q2", fn) == "q1"
        assert store.current() is None

    def test_wrap_preserves_metadata(self, store):
        def named():
            """Doc."""

        wrapped = store.wrap(named)
        assert wrapped.__name__ == "named"
        assert wrapped.__doc__ == "Doc."

    def test_wrapped_is_reentrant(self, store):
        calls = []

        def recurse(n):
            calls.append(store.current())
            if n:
                wrapped(n - 1)

        wrapped = store.run("q1", store.wrap, recurse)
        wrapped(2)
        assert calls == ["q1", "q1", "q1"]

    @pytest.mark.asyncio
    async def test_wrapped_callback_from_other_task(self, store):
        loop = asyncio.get_running_loop()
        seen = loop.create_future()
        callback = store.run("q1", store.wrap, lambda: seen.set_result(store.current()))

        async def other():
            loop.call_soon(callback)

        await store.run("q2", other)
        assert await seen == "q1"
