"""Tests for the shared-slot store and the collisions it produces."""

import asyncio

import pytest

from ctxlocal.harness.scenarios import shared_slot_collisions
from ctxlocal.shared import SharedSlotStore


class TestSharedSlotStore:
    """Last-writer-wins behaviour."""

    def test_initially_absent(self):
        assert SharedSlotStore().current() is None

    def test_default_before_first_run(self):
        sentinel = object()
        assert SharedSlotStore().current(sentinel) is sentinel

    def test_bound_none_wins_over_default(self):
        slot = SharedSlotStore()
        assert slot.run(None, slot.current, "fallback") is None
        assert slot.current("fallback") is None

    def test_run_sets_slot_and_returns(self):
        slot = SharedSlotStore()
        assert slot.run("q1", slot.current) == "q1"

    def test_value_survives_extent(self):
        """The slot is never torn down, so the old value leaks out."""
        slot = SharedSlotStore()
        slot.run("q1", lambda: None)
        assert slot.current() == "q1"

    def test_last_writer_wins(self):
        slot = SharedSlotStore()
        slot.run("q1", lambda: None)
        slot.run("q2", lambda: None)
        assert slot.current() == "q2"


class TestCollisions:
    """The interleaving that the context store survives breaks the shared slot."""

    @pytest.mark.asyncio
    async def test_interleaved_reads_see_other_tasks(self):
        slot = SharedSlotStore()

        async def body(i):
            await asyncio.sleep(0)
            return slot.current()

        results = await asyncio.gather(*(slot.run(i, body, i) for i in range(5)))
        assert results == [4] * 5

    @pytest.mark.asyncio
    async def test_regression_scenario_collides(self):
        observations, collisions = await shared_slot_collisions(SharedSlotStore(), 50, 5)
        assert observations == 250
        assert len(collisions) > 0
        assert any("expected queryId 0, got 49" in c for c in collisions)
