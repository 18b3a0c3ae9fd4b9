"""
Isolation scenarios.

Each scenario drives a store through deliberate suspension points and
returns (observations, mismatches). A mismatch is a message describing a
read that did not return the reader's own bound value. Scenarios never
raise on a mismatch; the runner decides what the list means.
"""

import asyncio
from typing import Any, List, Union

from ..shared import SharedSlotStore
from ..store import ContextStore
from .models import Query, ScenarioOutcome

Store = Union[ContextStore, SharedSlotStore]


def _describe(value: Any) -> str:
    if value is None:
        return "nothing"
    if isinstance(value, Query):
        return str(value.query_id)
    return repr(value)


async def _interleave(store: Store, concurrency: int, checkpoints: int) -> ScenarioOutcome:
    """Run *concurrency* bound tasks that each yield *checkpoints* times."""
    mismatches: List[str] = []

    async def query_body(index: int) -> Any:
        for checkpoint in range(checkpoints):
            # Next loop turn; every other ready task runs before we resume.
            await asyncio.sleep(0)

            ctx = store.current()
            if ctx is None:
                mismatches.append(f"Query {index}, checkpoint {checkpoint}: context is absent")
            elif ctx.query_id != index:
                mismatches.append(
                    f"Query {index}, checkpoint {checkpoint}: "
                    f"expected queryId {index}, got {_describe(ctx)}"
                )
        return store.current()

    pending = [
        store.run(Query.for_index(i), query_body, i)
        for i in range(concurrency)
    ]
    results = await asyncio.gather(*pending)

    for index, final in enumerate(results):
        if final is None or final.query_id != index:
            mismatches.append(
                f"Final result {index}: expected queryId {index}, got {_describe(final)}"
            )

    return concurrency * checkpoints, mismatches


async def fan_out_isolation(
    store: ContextStore,
    concurrency: int = 500,
    checkpoints: int = 10,
) -> ScenarioOutcome:
    """Many concurrent tasks, each reading its own value after every yield."""
    return await _interleave(store, concurrency, checkpoints)


async def shared_slot_collisions(
    store: SharedSlotStore,
    concurrency: int = 50,
    suspensions: int = 5,
) -> ScenarioOutcome:
    """Same interleaving against the shared slot; the mismatches are collisions."""
    return await _interleave(store, concurrency, suspensions)


async def nested_restore(store: ContextStore) -> ScenarioOutcome:
    """outer, then inner inside a nested run, then outer again."""
    seen = {}

    async def inner():
        await asyncio.sleep(0)
        seen["inner"] = store.current()

    async def outer():
        seen["outer before inner"] = store.current()
        await store.run({"level": "inner"}, inner)
        seen["outer after inner"] = store.current()

    await store.run({"level": "outer"}, outer)

    mismatches = []
    for key, level in (
        ("outer before inner", "outer"),
        ("inner", "inner"),
        ("outer after inner", "outer"),
    ):
        got = seen.get(key)
        if not isinstance(got, dict) or got.get("level") != level:
            mismatches.append(f"{key.capitalize()}: expected level {level!r}, got {_describe(got)}")

    return len(seen), mismatches


async def chained_continuations(store: ContextStore, delay: float = 0.01) -> ScenarioOutcome:
    """Three dependent steps: a deferred callback, a timed deferral, a done-callback.

    Two chains run side by side with different values so each step also
    has a sibling continuation interleaved next to it.
    """
    mismatches: List[str] = []
    observations = 0

    def check(expected: dict, step: str) -> None:
        nonlocal observations
        observations += 1
        got = store.current()
        if got is not expected:
            mismatches.append(
                f"{expected['type']}, {step}: expected {expected['type']!r}, got {_describe(got)}"
            )

    async def chain(expected: dict) -> int:
        loop = asyncio.get_running_loop()

        first = loop.create_future()

        def step_one():
            check(expected, "deferred callback")
            first.set_result(1)

        loop.call_soon(step_one)
        value = await first

        await asyncio.sleep(delay)
        check(expected, "timed deferral")
        value += 1

        pending = loop.create_future()
        third = loop.create_future()

        def step_three(fut):
            check(expected, "chained continuation")
            third.set_result(fut.result() + 1)

        pending.add_done_callback(step_three)
        loop.call_later(delay, pending.set_result, value)
        return await third

    primary = {"type": "promise-chain"}
    sibling = {"type": "promise-chain-sibling"}
    results = await asyncio.gather(
        store.run(primary, chain, primary),
        store.run(sibling, chain, sibling),
    )

    for expected, result in zip((primary, sibling), results):
        if result != 3:
            mismatches.append(f"{expected['type']}: chain returned {result}, expected 3")

    return observations, mismatches


async def sequential_reentry(store: ContextStore, rounds: int = 3) -> ScenarioOutcome:
    """Re-run one value in non-overlapping extents; nothing leaks between them."""
    mismatches: List[str] = []
    observations = 0
    value = {"type": "reentry"}

    async def body(round_no: int):
        await asyncio.sleep(0)
        return round_no, store.current()

    for round_no in range(rounds):
        before = store.current()
        observations += 1
        if before is not None:
            mismatches.append(f"Round {round_no}: stale value {_describe(before)} before run")

        returned_round, got = await store.run(value, body, round_no)
        observations += 1
        if got is not value or returned_round != round_no:
            mismatches.append(f"Round {round_no}: expected {value!r}, got {_describe(got)}")

    after = store.current()
    observations += 1
    if after is not None:
        mismatches.append(f"After last round: stale value {_describe(after)}")

    return observations, mismatches
