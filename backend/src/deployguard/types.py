"""
Shared type definitions for the deployment guard.
"""
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .deployment.models import Deployment


PHASE_ORDER: tuple[str, ...] = ("provision", "build", "deploy", "verify")


class DeploymentStatus(Enum):
    """Overall status of a deployment attempt."""
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class DeploymentType(Enum):
    """Kind of deployment attempt."""
    NORMAL = "NORMAL"
    ROLLBACK = "ROLLBACK"


class PhaseStatus(Enum):
    """Status of a single deployment phase."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ErrorCategory(Enum):
    """Categories for classifying diagnostic errors."""
    CONFIGURATION = "CONFIGURATION"
    DEPENDENCY = "DEPENDENCY"
    BUILD = "BUILD"
    DEPLOYMENT = "DEPLOYMENT"
    SYSTEM = "SYSTEM"
    VALIDATION = "VALIDATION"
    UNKNOWN = "UNKNOWN"


class Severity(Enum):
    """How badly an error affects a deployment."""
    CRITICAL = "CRITICAL"  # Blocks deployment
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: Any, default: "Severity | None" = None) -> "Severity | None":
        """Lenient conversion from raw collaborator values."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                return default
        return default


class Urgency(Enum):
    """Recommended response timeframe, independent of severity."""
    IMMEDIATE = "IMMEDIATE"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.ERROR: 3,
    Severity.WARNING: 2,
    Severity.INFO: 1,
}

_URGENCY_RANK = {
    Urgency.IMMEDIATE: 4,
    Urgency.HIGH: 3,
    Urgency.MEDIUM: 2,
    Urgency.LOW: 1,
}


class PhaseExecutor(Protocol):
    """Performs the real work of one deployment phase."""

    async def run_phase(self, name: str, deployment: "Deployment") -> None:
        """Run phase ``name``. Raise to signal failure."""
        ...


class EmailSender(Protocol):
    """Delivers failure e-mails."""

    async def send(self, to: str, subject: str, body: str) -> None:
        ...


class WebhookSender(Protocol):
    """Delivers webhook payloads."""

    async def post(self, url: str, payload: dict[str, Any]) -> None:
        ...


class RollbackExecutor(Protocol):
    """Restores infrastructure to a previous deployment."""

    async def restore(self, target_deployment_id: str) -> None:
        ...


class RecordLog(Protocol):
    """Append-only sink for observable records (notifications, rollbacks)."""

    async def append(self, record: dict[str, Any]) -> None:
        ...

    async def read_all(self) -> list[dict[str, Any]]:
        ...
