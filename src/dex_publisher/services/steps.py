"""Required / best-effort step sequencing.

A workflow is a list of :class:`Step`.  A failing required step aborts the
sequence with its original exception; a failing best-effort step is recorded
as a :class:`StepFailure` and the sequence continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence

from dex_publisher.domain.entities import StepFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Step:
    name: str
    action: Callable[[], Awaitable[Any]]
    required: bool = True


@dataclass
class StepOutcome:
    """Results keyed by step name, plus failures of best-effort steps."""

    results: dict[str, Any] = field(default_factory=dict)
    failures: list[StepFailure] = field(default_factory=list)


async def run_steps(steps: Sequence[Step]) -> StepOutcome:
    """Run *steps* in order, collecting best-effort failures."""
    outcome = StepOutcome()
    for step in steps:
        try:
            outcome.results[step.name] = await step.action()
        except Exception as exc:
            if step.required:
                raise
            logger.warning("Best-effort step '%s' failed: %s", step.name, exc)
            outcome.failures.append(
                StepFailure(step=step.name, error_type=type(exc).__name__, message=str(exc))
            )
    return outcome
