"""
Ordered step pipelines with a two-tier failure policy.

A lifecycle event is handled by running a list of ``Step`` objects in
order.  Each step declares its severity:

- ``CRITICAL``: the event exists to perform this write.  A failure is
  logged, the remaining steps are skipped and ``CriticalStepError`` is
  raised so the trigger source redelivers the event.
- ``ADVISORY``: derived-state maintenance.  A failure is logged, recorded
  in the ``EventReport`` and the next step runs.

Reordering or adding a step is a change to the list, not to control flow.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from boardsync.errors import CriticalStepError
from boardsync.schemas import EventReport, StepOutcome

logger = logging.getLogger(__name__)


class Severity(str, enum.Enum):
    CRITICAL = "critical"
    ADVISORY = "advisory"


@dataclass(frozen=True)
class Step:
    name: str
    severity: Severity
    action: Callable[[], Awaitable[object]]


def critical(name: str, action: Callable[[], Awaitable[object]]) -> Step:
    return Step(name, Severity.CRITICAL, action)


def advisory(name: str, action: Callable[[], Awaitable[object]]) -> Step:
    return Step(name, Severity.ADVISORY, action)


async def run_pipeline(event: str, steps: list[Step]) -> EventReport:
    report = EventReport(event=event)
    for step in steps:
        try:
            await step.action()
        except Exception as exc:
            if step.severity is Severity.CRITICAL:
                logger.error("[%s] critical step %s failed: %s", event, step.name, exc)
                raise CriticalStepError(event, step.name, exc) from exc
            logger.error("[%s] %s failed: %s", event, step.name, exc)
            report.outcomes.append(
                StepOutcome(step=step.name, severity=step.severity.value, ok=False, error=str(exc))
            )
        else:
            report.outcomes.append(
                StepOutcome(step=step.name, severity=step.severity.value, ok=True)
            )

    if report.degraded:
        logger.warning("[%s] completed degraded: %s", event, ", ".join(report.failed_steps))
    else:
        logger.info("[%s] completed", event)
    return report
