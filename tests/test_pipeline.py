import pytest

from boardsync.errors import CriticalStepError
from boardsync.services.pipeline import Severity, advisory, critical, run_pipeline


def _recorder(calls, name, exc=None):
    async def action():
        calls.append(name)
        if exc is not None:
            raise exc
    return action


@pytest.mark.asyncio
async def test_steps_run_in_declared_order():
    calls = []
    steps = [critical(n, _recorder(calls, n)) for n in ("a", "b", "c")]
    report = await run_pipeline("test.event", steps)
    assert calls == ["a", "b", "c"]
    assert [o.step for o in report.outcomes] == ["a", "b", "c"]
    assert report.degraded is False


@pytest.mark.asyncio
async def test_advisory_failure_is_recorded_and_next_step_runs():
    calls = []
    report = await run_pipeline("test.event", [
        advisory("flaky", _recorder(calls, "flaky", RuntimeError("boom"))),
        critical("write", _recorder(calls, "write")),
    ])
    assert calls == ["flaky", "write"]
    assert report.degraded is True
    assert report.failed_steps == ["flaky"]
    assert report.outcomes[0].error == "boom"
    assert report.outcomes[0].severity == Severity.ADVISORY.value


@pytest.mark.asyncio
async def test_critical_failure_stops_pipeline():
    calls = []
    with pytest.raises(CriticalStepError) as excinfo:
        await run_pipeline("test.event", [
            critical("write", _recorder(calls, "write", ValueError("disk full"))),
            advisory("after", _recorder(calls, "after")),
        ])
    assert calls == ["write"]
    assert excinfo.value.event == "test.event"
    assert excinfo.value.step == "write"
    assert isinstance(excinfo.value.__cause__, ValueError)


@pytest.mark.asyncio
async def test_report_serialises_degraded_flag():
    report = await run_pipeline("test.event", [])
    assert report.model_dump() == {"event": "test.event", "outcomes": [], "degraded": False}
