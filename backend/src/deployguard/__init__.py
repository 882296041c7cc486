"""
Deployment lifecycle tracking with automatic rollback, and classification
of pre-deployment diagnostics.
"""
__version__ = "0.1.0"

from .types import (
    PHASE_ORDER,
    DeploymentStatus,
    DeploymentType,
    ErrorCategory,
    PhaseStatus,
    Severity,
    Urgency,
)
from .exceptions import (
    ConfigurationError,
    DeployGuardError,
    DeploymentStateError,
    NotificationError,
    OrchestrationError,
    PhaseExecutionError,
    RollbackExecutionError,
)
from .config import ConfigStore, ConfigValidation, MonitorConfig
from .deployment import Deployment, FailureDetails, RollbackResult, TrackResult
from .persistence import MemoryHistoryStore, SQLAlchemyHistoryStore
from .deployment.monitor import ContinuousDeploymentMonitor
from .deployment.notifications import NotificationDispatcher
from .deployment.rollback import RollbackEngine
from .deployment.tracker import PhaseTracker
from .classification import ErrorClassifier, RawError
from .orchestrator import CheckerResult, ErrorHandlingOrchestrator

__all__ = [
    '__version__',
    'PHASE_ORDER',
    'DeploymentStatus',
    'DeploymentType',
    'PhaseStatus',
    'ErrorCategory',
    'Severity',
    'Urgency',
    'DeployGuardError',
    'PhaseExecutionError',
    'NotificationError',
    'RollbackExecutionError',
    'DeploymentStateError',
    'ConfigurationError',
    'OrchestrationError',
    'MonitorConfig',
    'ConfigStore',
    'ConfigValidation',
    'Deployment',
    'FailureDetails',
    'RollbackResult',
    'TrackResult',
    'MemoryHistoryStore',
    'SQLAlchemyHistoryStore',
    'ContinuousDeploymentMonitor',
    'NotificationDispatcher',
    'RollbackEngine',
    'PhaseTracker',
    'ErrorClassifier',
    'RawError',
    'ErrorHandlingOrchestrator',
    'CheckerResult',
]
