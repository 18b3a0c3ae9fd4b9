"""
Scenario runner — registry and executor for the isolation scenarios.

Scenarios are split into two suites with independent verdicts:

- acceptance: ContextStore must isolate every task (zero mismatches)
- regression: SharedSlotStore must collide (at least one mismatch)

A regression run with no collisions is an infrastructure failure: the
interleaving was too weak to reproduce the bug, which says nothing about
the shared slot being safe.
"""

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional

from ..config import HarnessConfig
from ..errors import ErrorBoundary, ErrorCategory, ScenarioError, format_error_for_log
from ..shared import SharedSlotStore
from ..store import ContextStore
from . import scenarios
from .models import (
    Expectation,
    Scenario,
    ScenarioOutcome,
    ScenarioResult,
    ScenarioStatus,
    Suite,
)

logger = logging.getLogger(__name__)


def classify(expectation: Expectation, mismatches: List[str]) -> ScenarioStatus:
    """Turn a mismatch list into a verdict for the given expectation."""
    if expectation == Expectation.ISOLATED:
        return ScenarioStatus.PASSED if not mismatches else ScenarioStatus.FAILED
    if mismatches:
        return ScenarioStatus.PASSED
    return ScenarioStatus.INFRASTRUCTURE_FAILURE


class ScenarioRunner:
    """Registry of scenarios, run in registration order."""

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        store: Optional[ContextStore] = None,
        show_technical_details: bool = False,
    ):
        self.config = config or HarnessConfig()
        self.store = store or ContextStore("query")
        self.show_technical_details = show_technical_details
        self._scenarios: Dict[str, Scenario] = {}
        self._register_defaults()

    # -- Registry -------------------------------------------------------------

    def register(
        self,
        name: str,
        label: str,
        suite: Suite,
        expectation: Expectation,
        factory: Callable,
    ) -> Scenario:
        """Register a scenario.

        Raises:
            ScenarioError: If *name* is already registered.
        """
        if name in self._scenarios:
            raise ScenarioError(f"Scenario already registered: {name}")
        scenario = Scenario(
            name=name,
            label=label,
            suite=suite,
            expectation=expectation,
            factory=factory,
        )
        self._scenarios[name] = scenario
        return scenario

    def get_scenario(self, name: str) -> Scenario:
        try:
            return self._scenarios[name]
        except KeyError:
            raise ScenarioError(
                f"Unknown scenario: {name}",
                suggested_action=f"Choose one of: {', '.join(self._scenarios)}"
            ) from None

    def list_scenarios(self, suite: Optional[Suite] = None) -> List[Scenario]:
        scenarios_ = list(self._scenarios.values())
        if suite is not None:
            scenarios_ = [s for s in scenarios_ if s.suite == suite]
        return scenarios_

    def _register_defaults(self) -> None:
        cfg = self.config
        store = self.store

        self.register(
            "fan_out_isolation",
            "Concurrent query isolation",
            Suite.ACCEPTANCE,
            Expectation.ISOLATED,
            lambda: scenarios.fan_out_isolation(store, cfg.concurrency, cfg.checkpoints),
        )
        self.register(
            "nested_restore",
            "Nested context",
            Suite.ACCEPTANCE,
            Expectation.ISOLATED,
            lambda: scenarios.nested_restore(store),
        )
        self.register(
            "chained_continuations",
            "Chained continuations",
            Suite.ACCEPTANCE,
            Expectation.ISOLATED,
            lambda: scenarios.chained_continuations(store, cfg.chain_delay),
        )
        self.register(
            "sequential_reentry",
            "Sequential re-entry",
            Suite.ACCEPTANCE,
            Expectation.ISOLATED,
            lambda: scenarios.sequential_reentry(store, cfg.reentry_rounds),
        )
        # A fresh slot per run so earlier runs cannot leave a value behind.
        self.register(
            "shared_slot_collisions",
            "Shared-slot regression",
            Suite.REGRESSION,
            Expectation.MUST_COLLIDE,
            lambda: scenarios.shared_slot_collisions(
                SharedSlotStore(),
                cfg.regression_concurrency,
                cfg.regression_suspensions,
            ),
        )

    # -- Execution ------------------------------------------------------------

    async def run_scenario(self, name: str) -> ScenarioResult:
        """Run one scenario. Never raises for failures inside the scenario."""
        scenario = self.get_scenario(name)
        logger.info(f"Running scenario {scenario.name} ({scenario.suite.value})")

        outcome: Optional[ScenarioOutcome] = None
        start = time.perf_counter()
        with ErrorBoundary(
            scenario.name,
            show_technical_details=self.show_technical_details,
            default_category=ErrorCategory.SCENARIO,
        ) as boundary:
            outcome = await scenario.factory()
        duration_ms = (time.perf_counter() - start) * 1000

        if boundary.has_error:
            logger.error(format_error_for_log(boundary.error_context))
            return ScenarioResult(
                name=scenario.name,
                label=scenario.label,
                suite=scenario.suite,
                expectation=scenario.expectation,
                status=ScenarioStatus.ERROR,
                duration_ms=duration_ms,
                error=boundary.error_context.user_message,
            )

        observations, mismatches = outcome
        status = classify(scenario.expectation, mismatches)
        logger.info(
            f"Scenario {scenario.name}: {status.value} "
            f"({observations} observations, {len(mismatches)} mismatches)"
        )
        if status == ScenarioStatus.INFRASTRUCTURE_FAILURE:
            logger.warning(
                f"Scenario {scenario.name} produced no collisions; "
                "interleaving pressure was insufficient"
            )

        return ScenarioResult(
            name=scenario.name,
            label=scenario.label,
            suite=scenario.suite,
            expectation=scenario.expectation,
            status=status,
            observations=observations,
            mismatches=list(mismatches),
            duration_ms=duration_ms,
        )

    async def run_all(
        self,
        suites: Optional[Iterable[Suite]] = None,
        on_result: Optional[Callable[[ScenarioResult], None]] = None,
    ) -> List[ScenarioResult]:
        """Run every scenario in the selected suites (all suites by default).

        Args:
            suites: Suites to run.
            on_result: Called with each result as soon as it is available.
        """
        selected = set(suites) if suites is not None else set(Suite)
        results = []
        for scenario in self.list_scenarios():
            if scenario.suite not in selected:
                continue
            result = await self.run_scenario(scenario.name)
            if on_result is not None:
                on_result(result)
            results.append(result)
        return results

    @staticmethod
    def all_passed(results: List[ScenarioResult]) -> bool:
        """True iff at least one scenario ran and every scenario passed."""
        return bool(results) and all(r.passed for r in results)
