"""Concurrency harness for context-local storage."""

from .models import (
    Expectation,
    Query,
    Scenario,
    ScenarioResult,
    ScenarioStatus,
    Suite,
)
from .runner import ScenarioRunner, classify

__all__ = [
    "Expectation",
    "Query",
    "Scenario",
    "ScenarioResult",
    "ScenarioRunner",
    "ScenarioStatus",
    "Suite",
    "classify",
]
