"""
Scenario data models.

Defines the Query record bound by the scenarios, the status and
expectation enums, and the ScenarioResult dataclass consumed by the
report.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

# (observations made, mismatch messages)
ScenarioOutcome = Tuple[int, List[str]]


class ScenarioStatus(Enum):
    """Verdict for a single scenario."""
    PASSED = "passed"
    FAILED = "failed"
    INFRASTRUCTURE_FAILURE = "infrastructure_failure"
    ERROR = "error"


class Expectation(Enum):
    """What a scenario must observe to pass."""
    ISOLATED = "isolated"           # zero mismatches
    MUST_COLLIDE = "must_collide"   # at least one mismatch


class Suite(Enum):
    ACCEPTANCE = "acceptance"
    REGRESSION = "regression"


@dataclass(frozen=True)
class Query:
    """Context value bound by one logical task."""
    query_id: int
    cube_name: str

    @classmethod
    def for_index(cls, index: int) -> "Query":
        return cls(query_id=index, cube_name=f"Cube_{index}")


@dataclass
class Scenario:
    """A registered scenario: metadata plus the coroutine factory that runs it."""
    name: str
    label: str
    suite: Suite
    expectation: Expectation
    factory: Callable[[], Awaitable[ScenarioOutcome]] = field(repr=False)


@dataclass
class ScenarioResult:
    """Outcome of one scenario run."""
    name: str
    label: str
    suite: Suite
    expectation: Expectation
    status: ScenarioStatus
    observations: int = 0
    mismatches: List[str] = field(default_factory=list)
    duration_ms: float = 0.0
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.status == ScenarioStatus.PASSED

    @property
    def mismatch_count(self) -> int:
        return len(self.mismatches)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "label": self.label,
            "suite": self.suite.value,
            "expectation": self.expectation.value,
            "status": self.status.value,
            "observations": self.observations,
            "mismatch_count": self.mismatch_count,
            "duration_ms": round(self.duration_ms, 2),
            "error": self.error,
        }
