"""Tests for sequential phase tracking."""
import pytest

from backend.src.deployguard.deployment.executors import SimulatedPhaseExecutor
from backend.src.deployguard.deployment.models import Deployment
from backend.src.deployguard.deployment.tracker import PhaseTracker
from backend.src.deployguard.types import PHASE_ORDER, DeploymentStatus, PhaseStatus
from backend.tests.deployguard.fakes import ScriptedPhaseExecutor


@pytest.mark.asyncio
async def test_all_phases_succeed():
    """Every phase runs once, in order, and the deployment succeeds."""
    executor = ScriptedPhaseExecutor()
    deployment = Deployment(id="deploy-1")

    assert await PhaseTracker(executor).run(deployment) is True

    assert executor.calls == list(PHASE_ORDER)
    assert deployment.status == DeploymentStatus.SUCCESS
    assert all(p.status == PhaseStatus.SUCCESS for p in deployment.phases.values())
    assert [entry.phase for entry in deployment.logs] == list(PHASE_ORDER)


@pytest.mark.asyncio
@pytest.mark.parametrize("failing", PHASE_ORDER)
async def test_failure_halts_later_phases(failing):
    """Phases before the failure succeed, later ones never start."""
    executor = ScriptedPhaseExecutor(fail={failing: f"{failing} phase failed"})
    deployment = Deployment(id="deploy-1")

    assert await PhaseTracker(executor).run(deployment) is False

    index = PHASE_ORDER.index(failing)
    assert executor.calls == list(PHASE_ORDER[:index + 1])
    for i, name in enumerate(PHASE_ORDER):
        phase = deployment.phases[name]
        if i < index:
            assert phase.status == PhaseStatus.SUCCESS
        elif i == index:
            assert phase.status == PhaseStatus.FAILED
            assert phase.end_time is not None
        else:
            assert phase.status == PhaseStatus.PENDING
            assert phase.start_time is None

    assert deployment.status == DeploymentStatus.FAILED
    assert deployment.error == f"{failing} phase failed"
    assert deployment.failed_phase() == failing


@pytest.mark.asyncio
async def test_failure_is_logged_as_error():
    executor = ScriptedPhaseExecutor(fail={"build": "compiler crashed"})
    deployment = Deployment(id="deploy-1")

    await PhaseTracker(executor).run(deployment)

    last = deployment.logs[-1]
    assert last.phase == "build"
    assert last.level == "ERROR"
    assert last.message == "compiler crashed"


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_phase_failure():
    """An arbitrary exception from the executor fails the phase instead of propagating."""
    executor = ScriptedPhaseExecutor(fail={"deploy": RuntimeError("connection reset")})
    deployment = Deployment(id="deploy-1")

    assert await PhaseTracker(executor).run(deployment) is False

    assert deployment.phases["deploy"].status == PhaseStatus.FAILED
    assert deployment.error == "deploy phase failed: connection reset"


@pytest.mark.asyncio
async def test_simulated_executor_always_failing():
    executor = SimulatedPhaseExecutor(min_delay=0, max_delay=0, failure_rate=1.0)
    deployment = Deployment(id="deploy-1")

    assert await PhaseTracker(executor).run(deployment) is False
    assert deployment.error == "provision phase failed"
    assert deployment.phases["build"].status == PhaseStatus.PENDING


@pytest.mark.asyncio
async def test_simulated_executor_never_failing():
    executor = SimulatedPhaseExecutor(min_delay=0, max_delay=0, failure_rate=0.0)
    deployment = Deployment(id="deploy-1")

    assert await PhaseTracker(executor).run(deployment) is True
