"""Deployment lifecycle tracking with automatic rollback."""
from .models import (
    FAILURE_LOG_TAIL,
    UNKNOWN_PHASE,
    Deployment,
    FailureDetails,
    LogEntry,
    Phase,
    RollbackRecord,
    RollbackResult,
    TrackResult,
    TriggerVerification,
)

__all__ = [
    'Deployment',
    'Phase',
    'LogEntry',
    'RollbackRecord',
    'RollbackResult',
    'FailureDetails',
    'TrackResult',
    'TriggerVerification',
    'UNKNOWN_PHASE',
    'FAILURE_LOG_TAIL',
]
