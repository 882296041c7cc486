"""Tests for deployment lifecycle models."""
from datetime import timedelta

import pytest

from backend.src.deployguard.deployment.models import (
    FAILURE_LOG_TAIL,
    UNKNOWN_PHASE,
    Deployment,
    FailureDetails,
    RollbackRecord,
)
from backend.src.deployguard.exceptions import DeploymentStateError
from backend.src.deployguard.types import PHASE_ORDER, DeploymentStatus, DeploymentType, PhaseStatus, Severity
from backend.tests.deployguard.fakes import make_deployment


class TestDeployment:
    """Test deployment state transitions."""

    def test_new_deployment_starts_in_progress(self):
        deployment = Deployment(id="deploy-1")

        assert deployment.status == DeploymentStatus.IN_PROGRESS
        assert deployment.type == DeploymentType.NORMAL
        assert deployment.end_time is None
        assert deployment.duration is None
        assert list(deployment.phases) == list(PHASE_ORDER)
        assert all(p.status == PhaseStatus.PENDING for p in deployment.phases.values())

    def test_complete_sets_end_time(self):
        deployment = Deployment(id="deploy-1")
        deployment.complete(True)

        assert deployment.status == DeploymentStatus.SUCCESS
        assert deployment.end_time is not None
        assert deployment.duration >= 0
        assert deployment.error is None

    def test_complete_failure_keeps_error(self):
        deployment = Deployment(id="deploy-1")
        deployment.complete(False, error="build phase failed")

        assert deployment.status == DeploymentStatus.FAILED
        assert deployment.error == "build phase failed"

    def test_terminal_deployment_cannot_complete_again(self):
        deployment = Deployment(id="deploy-1")
        deployment.complete(False, error="boom")

        with pytest.raises(DeploymentStateError):
            deployment.complete(True)
        assert deployment.status == DeploymentStatus.FAILED

    def test_terminal_deployment_rejects_logs(self):
        deployment = make_deployment("deploy-1")

        with pytest.raises(DeploymentStateError):
            deployment.add_log("verify", "late message")

    def test_phase_cannot_start_twice(self):
        deployment = Deployment(id="deploy-1")
        deployment.start_phase("provision")

        with pytest.raises(DeploymentStateError):
            deployment.start_phase("provision")

    def test_phase_must_start_before_finishing(self):
        deployment = Deployment(id="deploy-1")

        with pytest.raises(DeploymentStateError):
            deployment.finish_phase("build", success=True)

    def test_phase_timestamps(self):
        deployment = Deployment(id="deploy-1")
        phase = deployment.start_phase("provision")
        assert phase.start_time is not None
        assert phase.end_time is None

        deployment.finish_phase("provision", success=True)
        assert phase.status == PhaseStatus.SUCCESS
        assert phase.end_time >= phase.start_time

    def test_failed_phase(self):
        deployment = make_deployment("deploy-1", success=False, failed_phase="deploy")

        assert deployment.failed_phase() == "deploy"
        assert deployment.phases["verify"].status == PhaseStatus.PENDING

    def test_failed_phase_unknown_when_none_failed(self):
        deployment = Deployment(id="deploy-1")
        deployment.complete(False, error="cancelled")

        assert deployment.failed_phase() == UNKNOWN_PHASE

    def test_rollback_deployment(self):
        rollback = Deployment.rollback("rollback-1", "deploy-0")

        assert rollback.is_rollback
        assert rollback.target_deployment == "deploy-0"
        assert rollback.phases == {}
        assert rollback.status == DeploymentStatus.IN_PROGRESS

    def test_recent_logs_returns_tail(self):
        deployment = Deployment(id="deploy-1")
        for i in range(15):
            deployment.add_log("build", f"line {i}")

        logs = deployment.recent_logs(FAILURE_LOG_TAIL)
        assert len(logs) == FAILURE_LOG_TAIL
        assert logs[0].message == "line 5"
        assert logs[-1].message == "line 14"
        assert deployment.recent_logs(0) == []

    def test_dict_round_trip_preserves_state(self):
        deployment = make_deployment("deploy-1", success=False, failed_phase="build")
        restored = Deployment.from_dict(deployment.to_dict())

        assert restored == deployment
        assert restored.failed_phase() == "build"
        assert restored.start_time.tzinfo is not None


class TestFailureDetails:
    """Test failure summaries built from deployments."""

    def test_from_deployment(self):
        deployment = make_deployment("deploy-7", success=False, failed_phase="verify")

        details = FailureDetails.from_deployment(deployment)

        assert details.deployment_id == "deploy-7"
        assert details.failed_phase == "verify"
        assert details.error == "verify broke"
        assert details.logs == deployment.logs[-FAILURE_LOG_TAIL:]

    def test_to_dict_excludes_handling_outcome(self):
        details = FailureDetails.from_deployment(make_deployment("deploy-7", success=False))
        details.notifications = {"email": "sent"}

        data = details.to_dict()
        assert set(data) == {"deployment_id", "failed_phase", "error", "timestamp", "logs"}


class TestRollbackRecord:
    """Test rollback record serialization."""

    def test_round_trip(self):
        rollback = Deployment.rollback("rollback-1", "deploy-0")
        rollback.complete(True)
        record = RollbackRecord(original_deployment_id="deploy-1", rollback_deployment=rollback)

        restored = RollbackRecord.from_dict(record.to_dict())

        assert restored.original_deployment_id == "deploy-1"
        assert restored.rollback_deployment.target_deployment == "deploy-0"
        assert abs(restored.timestamp - record.timestamp) < timedelta(seconds=1)


class TestSeverity:
    """Test lenient severity parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("critical", Severity.CRITICAL),
        (" Warning ", Severity.WARNING),
        (Severity.INFO, Severity.INFO),
    ])
    def test_parse(self, value, expected):
        assert Severity.parse(value) == expected

    def test_parse_unknown_uses_default(self):
        assert Severity.parse("catastrophic", default=Severity.ERROR) == Severity.ERROR
        assert Severity.parse(None) is None

    def test_rank_orders_severities(self):
        ranked = sorted(Severity, key=lambda s: s.rank, reverse=True)
        assert ranked == [Severity.CRITICAL, Severity.ERROR, Severity.WARNING, Severity.INFO]
