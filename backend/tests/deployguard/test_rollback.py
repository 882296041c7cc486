"""Tests for automatic rollback."""
import pytest

from backend.src.deployguard.deployment.models import Deployment
from backend.src.deployguard.deployment.rollback import (
    NO_PREVIOUS_DEPLOYMENT_REASON,
    RollbackEngine,
    generate_rollback_id,
)
from backend.src.deployguard.types import DeploymentStatus, DeploymentType
from backend.tests.deployguard.fakes import RecordingRollbackExecutor, make_deployment


async def _seed(store, *deployments):
    for deployment in deployments:
        await store.append(deployment)


def _completed_rollback(rollback_id: str, target: str) -> Deployment:
    rollback = Deployment.rollback(rollback_id, target)
    rollback.complete(True)
    return rollback


class TestFindLastSuccessfulDeployment:
    """Test rollback target selection."""

    @pytest.mark.asyncio
    async def test_picks_newest_success(self, store):
        older = make_deployment("deploy-1")
        newer = make_deployment("deploy-2")
        failed = make_deployment("deploy-3", success=False)
        await _seed(store, older, newer, failed)

        target = await RollbackEngine(store).find_last_successful_deployment(failed)

        assert target.id == "deploy-2"

    @pytest.mark.asyncio
    async def test_skips_failed_and_rollback_entries(self, store):
        good = make_deployment("deploy-1")
        bad = make_deployment("deploy-2", success=False)
        rollback = _completed_rollback("rollback-1", "deploy-1")
        failed = make_deployment("deploy-3", success=False)
        await _seed(store, good, bad, rollback, failed)

        target = await RollbackEngine(store).find_last_successful_deployment(failed)

        assert target.id == "deploy-1"
        assert target.type == DeploymentType.NORMAL

    @pytest.mark.asyncio
    async def test_never_returns_the_failed_deployment(self, store):
        deployment = make_deployment("deploy-1")
        await _seed(store, deployment)

        assert await RollbackEngine(store).find_last_successful_deployment(deployment) is None

    @pytest.mark.asyncio
    async def test_without_argument_skips_latest_entry(self, store):
        await _seed(store, make_deployment("deploy-1"), make_deployment("deploy-2"))

        target = await RollbackEngine(store).find_last_successful_deployment()

        assert target.id == "deploy-1"

    @pytest.mark.asyncio
    async def test_empty_history(self, store):
        assert await RollbackEngine(store).find_last_successful_deployment() is None


class TestTriggerAutomaticRollback:
    """Test the rollback procedure and its records."""

    @pytest.mark.asyncio
    async def test_successful_rollback(self, store, record_log):
        good = make_deployment("deploy-1")
        failed = make_deployment("deploy-2", success=False)
        await _seed(store, good, failed)
        executor = RecordingRollbackExecutor()
        engine = RollbackEngine(store, executor=executor, record_log=record_log, id_factory=lambda: "rollback-1")

        result = await engine.trigger_automatic_rollback(failed)

        assert result.success is True
        assert result.reason is None
        assert executor.restored == ["deploy-1"]

        rollback = result.rollback_deployment
        assert rollback.id == "rollback-1"
        assert rollback.type == DeploymentType.ROLLBACK
        assert rollback.target_deployment == "deploy-1"
        assert rollback.status == DeploymentStatus.SUCCESS
        assert rollback.end_time is not None

        history = await store.list_deployments()
        assert [d.id for d in history] == ["deploy-1", "deploy-2", "rollback-1"]

        records = await store.list_rollbacks()
        assert len(records) == 1
        assert records[0].original_deployment_id == "deploy-2"
        assert records[0].rollback_deployment.id == "rollback-1"

        assert len(record_log.records) == 1
        assert record_log.records[0]["original_deployment_id"] == "deploy-2"
        assert record_log.records[0]["rollback_deployment"]["target_deployment"] == "deploy-1"

    @pytest.mark.asyncio
    async def test_no_target_writes_nothing(self, store, record_log):
        failed = make_deployment("deploy-1", success=False)
        await _seed(store, failed)
        executor = RecordingRollbackExecutor()
        engine = RollbackEngine(store, executor=executor, record_log=record_log)

        result = await engine.trigger_automatic_rollback(failed)

        assert result.success is False
        assert result.reason == NO_PREVIOUS_DEPLOYMENT_REASON
        assert result.rollback_deployment is None
        assert executor.restored == []
        assert await store.list_rollbacks() == []
        assert record_log.records == []
        assert [d.id for d in await store.list_deployments()] == ["deploy-1"]

    @pytest.mark.asyncio
    async def test_executor_failure_is_recorded(self, store, record_log, failing_rollback_executor):
        good = make_deployment("deploy-1")
        failed = make_deployment("deploy-2", success=False)
        await _seed(store, good, failed)
        engine = RollbackEngine(store, executor=failing_rollback_executor, record_log=record_log)

        result = await engine.trigger_automatic_rollback(failed)

        assert result.success is False
        assert result.reason == "restore script exited 2"
        assert result.rollback_deployment.status == DeploymentStatus.FAILED
        assert result.rollback_deployment.error == "restore script exited 2"
        assert len(await store.list_rollbacks()) == 1
        assert len(record_log.records) == 1

    @pytest.mark.asyncio
    async def test_unexpected_executor_error(self, store):
        good = make_deployment("deploy-1")
        failed = make_deployment("deploy-2", success=False)
        await _seed(store, good, failed)
        engine = RollbackEngine(store, executor=RecordingRollbackExecutor(RuntimeError("disk full")))

        result = await engine.trigger_automatic_rollback(failed)

        assert result.success is False
        assert result.reason == "Rollback failed: disk full"

    @pytest.mark.asyncio
    async def test_rollback_is_never_a_later_target(self, store):
        """A completed rollback does not become the next rollback target."""
        good = make_deployment("deploy-1")
        first_failure = make_deployment("deploy-2", success=False)
        await _seed(store, good, first_failure)
        engine = RollbackEngine(store)
        await engine.trigger_automatic_rollback(first_failure)

        second_failure = make_deployment("deploy-3", success=False)
        await store.append(second_failure)
        result = await engine.trigger_automatic_rollback(second_failure)

        assert result.rollback_deployment.target_deployment == "deploy-1"


def test_generated_rollback_ids_are_unique():
    ids = {generate_rollback_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(i.startswith("rollback-") for i in ids)
