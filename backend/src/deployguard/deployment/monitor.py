"""
Continuous deployment monitor.

Tracks a deployment through its phases, notifies on failure and rolls back
to the last known good deployment.
"""
import logging
import uuid
from pathlib import Path
from typing import Callable, List, Optional

from ..config import MonitorConfig
from ..persistence import (
    EMAIL_NOTIFICATIONS_FILE,
    ROLLBACK_HISTORY_FILE,
    WEBHOOK_NOTIFICATIONS_FILE,
    BaseHistoryStore,
    JsonRecordLog,
    MemoryHistoryStore,
    SQLAlchemyHistoryStore,
    default_database_url,
)
from ..types import PhaseExecutor
from .executors import (
    CommandPhaseExecutor,
    CommandRollbackExecutor,
    NoOpPhaseExecutor,
    SimulatedPhaseExecutor,
    SimulatedRollbackExecutor,
)
from .models import Deployment, FailureDetails, RollbackResult, TrackResult, TriggerVerification, utcnow
from .notifications import AiohttpWebhookSender, NotificationDispatcher, SmtpEmailSender
from .rollback import RollbackEngine
from .tracker import PhaseTracker

logger = logging.getLogger(__name__)


def generate_deployment_id() -> str:
    return f"deploy-{utcnow():%Y%m%d%H%M%S}-{uuid.uuid4().hex[:6]}"


def dispatcher_from_config(config: MonitorConfig, **kwargs) -> NotificationDispatcher:
    settings = config.notification_settings
    return NotificationDispatcher(
        notification_email=config.notification_email,
        webhook_url=config.webhook_url,
        email_on_failure=settings.email_on_failure,
        webhook_on_failure=settings.webhook_on_failure,
        email_on_success=settings.email_on_success,
        webhook_on_success=settings.webhook_on_success,
        **kwargs
    )


class ContinuousDeploymentMonitor:
    """Drives deployments and reacts to their failure.

    All collaborators are injected. Anything not supplied falls back to a
    no-op implementation and an in-memory history store, so a bare monitor
    is safe to use in tests.
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        store: Optional[BaseHistoryStore] = None,
        phase_executor: Optional[PhaseExecutor] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        rollback_engine: Optional[RollbackEngine] = None,
        id_factory: Callable[[], str] = generate_deployment_id
    ):
        self.config = config or MonitorConfig()
        self.store = store or MemoryHistoryStore()
        self.tracker = PhaseTracker(phase_executor or NoOpPhaseExecutor())
        self.dispatcher = dispatcher or dispatcher_from_config(self.config)
        self.rollback_engine = rollback_engine or RollbackEngine(self.store)
        self.id_factory = id_factory
        self._current: Optional[Deployment] = None

    @classmethod
    def from_config(
        cls,
        config: MonitorConfig,
        store: Optional[BaseHistoryStore] = None
    ) -> "ContinuousDeploymentMonitor":
        """Build a monitor with real collaborators.

        Phases run the configured shell commands, or are simulated when none
        are configured. Records are written under ``config.records_dir`` and
        history goes to the configured database.
        """
        records_dir = Path(config.records_dir)
        if store is None:
            store = SQLAlchemyHistoryStore(
                config.history_database_url or default_database_url(records_dir)
            )

        if config.phase_commands:
            phase_executor = CommandPhaseExecutor(
                config.phase_commands,
                timeout=config.deployment_settings.timeout_minutes * 60,
                cwd=str(records_dir),
                health_check_url=config.health_check_url,
            )
        else:
            phase_executor = SimulatedPhaseExecutor()

        if config.rollback_command:
            rollback_executor = CommandRollbackExecutor(
                config.rollback_command,
                timeout=config.rollback_settings.rollback_timeout_minutes * 60,
                cwd=str(records_dir),
            )
        else:
            rollback_executor = SimulatedRollbackExecutor()

        smtp = config.smtp
        email_sender = None
        if smtp.host:
            email_sender = SmtpEmailSender(
                smtp.host,
                port=smtp.port,
                username=smtp.username or None,
                password=smtp.password or None,
                use_tls=smtp.use_tls,
                sender=smtp.sender,
            )

        dispatcher = dispatcher_from_config(
            config,
            email_sender=email_sender,
            webhook_sender=AiohttpWebhookSender(),
            email_log=JsonRecordLog(records_dir / EMAIL_NOTIFICATIONS_FILE),
            webhook_log=JsonRecordLog(records_dir / WEBHOOK_NOTIFICATIONS_FILE),
        )
        rollback_engine = RollbackEngine(
            store,
            executor=rollback_executor,
            record_log=JsonRecordLog(records_dir / ROLLBACK_HISTORY_FILE),
        )
        return cls(
            config=config,
            store=store,
            phase_executor=phase_executor,
            dispatcher=dispatcher,
            rollback_engine=rollback_engine,
        )

    @property
    def current_deployment(self) -> Optional[Deployment]:
        """The deployment most recently started by this monitor."""
        return self._current

    async def verify_trigger(self) -> TriggerVerification:
        """Check the configuration needed for push-triggered deployments."""
        logger.info("Verifying push trigger configuration")
        checks = {
            "app_configured": bool(self.config.app_id),
            "branch_configured": bool(self.config.branch_name),
            "webhook_configured": bool(self.config.webhook_url),
            "monitoring_enabled": bool(self.config.monitoring_enabled),
        }

        recommendations = []
        if not checks["app_configured"]:
            recommendations.append("Set DEPLOY_APP_ID environment variable")
        if not checks["branch_configured"]:
            recommendations.append("Configure branch name in deployment settings")
        if not checks["webhook_configured"]:
            recommendations.append("Consider setting up webhook for custom notifications")
        if not checks["monitoring_enabled"]:
            recommendations.append("Enable monitoring_enabled to track deployments")

        success = all(checks.values())
        if success:
            logger.info("Push trigger configuration verified")
        else:
            failed = [name for name, passed in checks.items() if not passed]
            logger.warning(f"Push trigger configuration issues: {', '.join(failed)}")

        return TriggerVerification(success=success, checks=checks, recommendations=recommendations)

    async def track_deployment_progress(self, deployment_id: Optional[str] = None) -> TrackResult:
        """Run a new deployment through all phases.

        The deployment is appended to history before the first phase starts.
        On failure, notifications and rollback run before this returns.
        """
        deployment = Deployment(id=deployment_id or self.id_factory())
        self._current = deployment
        await self.store.append(deployment)
        logger.info(f"Tracking deployment {deployment.id}")

        success = await self.tracker.run(deployment)
        await self.store.record_completion(deployment)

        if success:
            await self.dispatcher.notify_success(deployment)
            return TrackResult(success=True, deployment=deployment, duration=deployment.duration)

        failure = await self.handle_deployment_failure(deployment)
        return TrackResult(
            success=False,
            deployment=deployment,
            duration=deployment.duration,
            error=deployment.error,
            failure=failure,
        )

    async def handle_deployment_failure(self, deployment: Deployment) -> FailureDetails:
        """Notify about a failed deployment and roll back if enabled."""
        logger.info(f"Handling failure of deployment {deployment.id}")
        details = FailureDetails.from_deployment(deployment)
        details.notifications = await self.dispatcher.notify_failure(details)

        if self.config.auto_rollback:
            details.rollback = await self.trigger_automatic_rollback(deployment)
        else:
            logger.info("Automatic rollback disabled, skipping")
        return details

    async def trigger_automatic_rollback(self, failed_deployment: Deployment) -> RollbackResult:
        return await self.rollback_engine.trigger_automatic_rollback(failed_deployment)

    async def find_last_successful_deployment(
        self,
        failed: Optional[Deployment] = None
    ) -> Optional[Deployment]:
        return await self.rollback_engine.find_last_successful_deployment(failed)

    async def get_deployment_status(self, deployment_id: str) -> Optional[Deployment]:
        return await self.store.get(deployment_id)

    async def get_deployment_history(self, limit: int = 10) -> List[Deployment]:
        """Most recent deployments, newest first."""
        return await self.store.recent(limit)

    async def close(self) -> None:
        await self.store.close()
