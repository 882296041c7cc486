"""Deployment lifecycle data structures."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..exceptions import DeploymentStateError
from ..types import PHASE_ORDER, DeploymentStatus, DeploymentType, PhaseStatus

UNKNOWN_PHASE = "unknown"
FAILURE_LOG_TAIL = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class LogEntry:
    """One line of a deployment's log."""

    timestamp: datetime
    phase: str
    message: str
    level: str = "INFO"

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "phase": self.phase,
            "message": self.message,
            "level": self.level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogEntry":
        return cls(
            timestamp=_parse_dt(data["timestamp"]),
            phase=data["phase"],
            message=data["message"],
            level=data.get("level", "INFO"),
        )


@dataclass
class Phase:
    """State of a single deployment phase."""

    status: PhaseStatus = PhaseStatus.PENDING
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (PhaseStatus.SUCCESS, PhaseStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Phase":
        return cls(
            status=PhaseStatus(data.get("status", PhaseStatus.PENDING.value)),
            start_time=_parse_dt(data.get("start_time")),
            end_time=_parse_dt(data.get("end_time")),
        )


def _default_phases() -> dict[str, Phase]:
    return {name: Phase() for name in PHASE_ORDER}


@dataclass
class Deployment:
    """One deployment attempt, normal or rollback, tracked start to finish.

    ``end_time`` is set exactly when ``status`` becomes terminal. After that
    the record is read-only: :meth:`complete` refuses a second transition.
    """

    id: str
    type: DeploymentType = DeploymentType.NORMAL
    status: DeploymentStatus = DeploymentStatus.IN_PROGRESS
    start_time: datetime = field(default_factory=utcnow)
    end_time: datetime | None = None
    error: str | None = None
    target_deployment: str | None = None
    phases: dict[str, Phase] = field(default_factory=_default_phases)
    logs: list[LogEntry] = field(default_factory=list)

    @classmethod
    def rollback(cls, rollback_id: str, target_deployment: str) -> "Deployment":
        """Create a rollback deployment restoring ``target_deployment``."""
        return cls(
            id=rollback_id,
            type=DeploymentType.ROLLBACK,
            target_deployment=target_deployment,
            phases={},
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (DeploymentStatus.SUCCESS, DeploymentStatus.FAILED)

    @property
    def is_rollback(self) -> bool:
        return self.type == DeploymentType.ROLLBACK

    @property
    def duration(self) -> float | None:
        """Elapsed seconds, or None while still in progress."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def start_phase(self, name: str) -> Phase:
        phase = self.phases[name]
        if self.is_terminal or phase.status != PhaseStatus.PENDING:
            raise DeploymentStateError(
                self.id, f"Cannot start phase '{name}' in state {phase.status.value}"
            )
        phase.status = PhaseStatus.IN_PROGRESS
        phase.start_time = utcnow()
        return phase

    def finish_phase(self, name: str, success: bool) -> Phase:
        phase = self.phases[name]
        if phase.status != PhaseStatus.IN_PROGRESS:
            raise DeploymentStateError(
                self.id, f"Cannot finish phase '{name}' in state {phase.status.value}"
            )
        phase.status = PhaseStatus.SUCCESS if success else PhaseStatus.FAILED
        phase.end_time = utcnow()
        return phase

    def add_log(self, phase: str, message: str, level: str = "INFO") -> LogEntry:
        if self.is_terminal:
            raise DeploymentStateError(self.id, f"Deployment {self.id} is already {self.status.value}")
        entry = LogEntry(timestamp=utcnow(), phase=phase, message=message, level=level)
        self.logs.append(entry)
        return entry

    def complete(self, success: bool, error: str | None = None) -> None:
        """Move to a terminal state and stamp ``end_time``."""
        if self.is_terminal:
            raise DeploymentStateError(self.id, f"Deployment {self.id} is already {self.status.value}")
        self.status = DeploymentStatus.SUCCESS if success else DeploymentStatus.FAILED
        self.error = None if success else error
        self.end_time = utcnow()

    def failed_phase(self) -> str:
        """First FAILED phase in declaration order.

        Declaration order equals execution order only while phases run
        sequentially.
        """
        for name, phase in self.phases.items():
            if phase.status == PhaseStatus.FAILED:
                return name
        return UNKNOWN_PHASE

    def recent_logs(self, count: int = FAILURE_LOG_TAIL) -> list[LogEntry]:
        return list(self.logs[-count:]) if count > 0 else []

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "status": self.status.value,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "error": self.error,
            "target_deployment": self.target_deployment,
            "phases": {name: phase.to_dict() for name, phase in self.phases.items()},
            "logs": [entry.to_dict() for entry in self.logs],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Deployment":
        return cls(
            id=data["id"],
            type=DeploymentType(data.get("type", DeploymentType.NORMAL.value)),
            status=DeploymentStatus(data.get("status", DeploymentStatus.IN_PROGRESS.value)),
            start_time=_parse_dt(data.get("start_time")) or utcnow(),
            end_time=_parse_dt(data.get("end_time")),
            error=data.get("error"),
            target_deployment=data.get("target_deployment"),
            phases={
                name: Phase.from_dict(phase)
                for name, phase in (data.get("phases") or {}).items()
            },
            logs=[LogEntry.from_dict(entry) for entry in data.get("logs") or []],
        )


@dataclass
class RollbackRecord:
    """Links a failed deployment to the rollback created for it."""

    original_deployment_id: str
    rollback_deployment: Deployment
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_deployment_id": self.original_deployment_id,
            "rollback_deployment": self.rollback_deployment.to_dict(),
            "timestamp": _iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RollbackRecord":
        return cls(
            original_deployment_id=data["original_deployment_id"],
            rollback_deployment=Deployment.from_dict(data["rollback_deployment"]),
            timestamp=_parse_dt(data.get("timestamp")) or utcnow(),
        )


@dataclass
class RollbackResult:
    """Outcome of an automatic rollback attempt."""

    success: bool
    rollback_deployment: Deployment | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "rollback_deployment": (
                self.rollback_deployment.to_dict() if self.rollback_deployment else None
            ),
            "reason": self.reason,
        }


@dataclass
class FailureDetails:
    """Summary of a failed deployment handed to notification sinks."""

    deployment_id: str
    failed_phase: str
    error: str | None
    timestamp: datetime
    logs: list[LogEntry]
    notifications: dict[str, str] = field(default_factory=dict)
    rollback: RollbackResult | None = None

    @classmethod
    def from_deployment(cls, deployment: Deployment) -> "FailureDetails":
        return cls(
            deployment_id=deployment.id,
            failed_phase=deployment.failed_phase(),
            error=deployment.error,
            timestamp=utcnow(),
            logs=deployment.recent_logs(FAILURE_LOG_TAIL),
        )

    def to_dict(self) -> dict[str, Any]:
        """Notification payload; excludes the handling outcome."""
        return {
            "deployment_id": self.deployment_id,
            "failed_phase": self.failed_phase,
            "error": self.error,
            "timestamp": _iso(self.timestamp),
            "logs": [entry.to_dict() for entry in self.logs],
        }


@dataclass
class TrackResult:
    """Result returned by ``track_deployment_progress``."""

    success: bool
    deployment: Deployment
    duration: float | None = None
    error: str | None = None
    failure: FailureDetails | None = None

    @property
    def rollback(self) -> RollbackResult | None:
        return self.failure.rollback if self.failure else None


@dataclass
class TriggerVerification:
    """Result of verifying the push-trigger configuration."""

    success: bool
    checks: dict[str, bool]
    recommendations: list[str] = field(default_factory=list)
    error: str | None = None
