"""
Exceptions for the deployment guard.
"""
from typing import Optional


class DeployGuardError(Exception):
    """Base exception for the deployment guard."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PhaseExecutionError(DeployGuardError):
    """Raised by a phase executor when a phase cannot complete."""

    def __init__(self, phase: str, reason: str):
        super().__init__(reason)
        self.phase = phase
        self.reason = reason


class NotificationError(DeployGuardError):
    """Raised by a sender when a notification cannot be delivered."""

    def __init__(self, channel: str, message: str):
        super().__init__(message)
        self.channel = channel


class RollbackExecutionError(DeployGuardError):
    """Raised by a rollback executor when the restore fails."""

    def __init__(self, target_deployment_id: str, message: str):
        super().__init__(message)
        self.target_deployment_id = target_deployment_id


class DeploymentStateError(DeployGuardError):
    """Raised on an illegal lifecycle transition."""

    def __init__(self, deployment_id: str, message: str):
        super().__init__(message)
        self.deployment_id = deployment_id


class ConfigurationError(DeployGuardError):
    """Raised when the configuration file is unusable."""

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class OrchestrationError(DeployGuardError):
    """Raised when an orchestrated check run cannot continue."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source
