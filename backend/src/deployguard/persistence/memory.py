"""In-memory implementation of the deployment history store."""
import asyncio

from ..deployment.models import Deployment, RollbackRecord
from ..exceptions import DeploymentStateError
from .base import BaseHistoryStore


class MemoryHistoryStore(BaseHistoryStore):
    """In-memory implementation of the deployment history store.

    Holds the live :class:`Deployment` objects, so a deployment that is
    still in progress is visible to readers. Useful for testing and for
    single-process use where history need not survive a restart.
    """

    def __init__(self):
        super().__init__()
        self._deployments: list[Deployment] = []
        self._rollbacks: list[RollbackRecord] = []
        self._lock = asyncio.Lock()

    async def _setup(self) -> None:
        """No setup needed for memory storage."""
        pass

    async def append(self, deployment: Deployment) -> None:
        async with self._lock:
            if any(existing.id == deployment.id for existing in self._deployments):
                raise DeploymentStateError(deployment.id, f"Deployment {deployment.id} already recorded")
            self._deployments.append(deployment)

    async def record_completion(self, deployment: Deployment) -> None:
        """Swap in the completed object if the caller holds a copy."""
        async with self._lock:
            for index, existing in enumerate(self._deployments):
                if existing.id != deployment.id:
                    continue
                if existing is deployment:
                    return
                if existing.is_terminal:
                    raise DeploymentStateError(
                        deployment.id, f"Deployment {deployment.id} is already {existing.status.value}"
                    )
                self._deployments[index] = deployment
                return
            raise DeploymentStateError(deployment.id, f"Deployment {deployment.id} is not recorded")

    async def list_deployments(self) -> list[Deployment]:
        async with self._lock:
            return list(self._deployments)

    async def append_rollback(self, record: RollbackRecord) -> None:
        async with self._lock:
            self._rollbacks.append(record)

    async def list_rollbacks(self) -> list[RollbackRecord]:
        async with self._lock:
            return list(self._rollbacks)

    async def clear(self) -> None:
        """Clear all stored data. Useful for testing."""
        async with self._lock:
            self._deployments.clear()
            self._rollbacks.clear()
