"""Automatic rollback to the last known good deployment."""
import logging
import uuid
from typing import Callable, Optional

from ..exceptions import RollbackExecutionError
from ..persistence.base import BaseHistoryStore
from ..persistence.records import NullRecordLog
from ..types import DeploymentStatus, RecordLog, RollbackExecutor
from .executors import NoOpRollbackExecutor
from .models import Deployment, RollbackRecord, RollbackResult

logger = logging.getLogger(__name__)

NO_PREVIOUS_DEPLOYMENT_REASON = "no previous successful deployment available"


def generate_rollback_id() -> str:
    return f"rollback-{uuid.uuid4().hex[:12]}"


class RollbackEngine:
    """Restores the most recent successful normal deployment.

    A rollback is itself recorded as a new ROLLBACK deployment in history.
    Rollback deployments are never chosen as a target, and a failed
    rollback does not trigger another one.
    """

    def __init__(
        self,
        store: BaseHistoryStore,
        executor: Optional[RollbackExecutor] = None,
        record_log: Optional[RecordLog] = None,
        id_factory: Callable[[], str] = generate_rollback_id
    ):
        self.store = store
        self.executor = executor or NoOpRollbackExecutor()
        self.record_log = record_log or NullRecordLog()
        self.id_factory = id_factory

    async def find_last_successful_deployment(
        self,
        failed: Optional[Deployment] = None
    ) -> Optional[Deployment]:
        """Scan history backward for the newest successful normal deployment.

        The deployment that triggered the search is skipped. When ``failed``
        is not given, the most recent history entry is skipped instead.
        """
        history = await self.store.list_deployments()
        if failed is None:
            candidates = history[:-1]
        else:
            candidates = [d for d in history if d.id != failed.id]

        for deployment in reversed(candidates):
            if deployment.status == DeploymentStatus.SUCCESS and not deployment.is_rollback:
                return deployment
        return None

    async def trigger_automatic_rollback(self, failed_deployment: Deployment) -> RollbackResult:
        logger.info(f"Triggering automatic rollback for {failed_deployment.id}")

        target = await self.find_last_successful_deployment(failed_deployment)
        if target is None:
            logger.warning("No previous successful deployment found, cannot roll back")
            return RollbackResult(success=False, reason=NO_PREVIOUS_DEPLOYMENT_REASON)

        rollback = Deployment.rollback(self.id_factory(), target.id)
        await self.store.append(rollback)
        logger.info(f"Rolling back to deployment {target.id} as {rollback.id}")

        reason = None
        try:
            await self.executor.restore(target.id)
        except RollbackExecutionError as e:
            reason = e.message
        except Exception as e:
            reason = f"Rollback failed: {e}"

        rollback.complete(reason is None, error=reason)
        await self.store.record_completion(rollback)

        record = RollbackRecord(
            original_deployment_id=failed_deployment.id,
            rollback_deployment=rollback,
        )
        await self.store.append_rollback(record)
        await self.record_log.append(record.to_dict())

        if reason is not None:
            logger.error(f"Automatic rollback {rollback.id} failed: {reason}")
            return RollbackResult(success=False, rollback_deployment=rollback, reason=reason)

        logger.info(f"Automatic rollback {rollback.id} completed")
        return RollbackResult(success=True, rollback_deployment=rollback)
