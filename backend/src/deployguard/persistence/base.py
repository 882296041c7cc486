"""
Base implementation for deployment history stores.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from ..deployment.models import Deployment, RollbackRecord
from ..types import DeploymentStatus


logger = logging.getLogger(__name__)


class BaseHistoryStore(ABC):
    """Append-only store of deployments and rollback records.

    Insertion order is chronological order. Past entries are never
    rewritten; the only permitted write after :meth:`append` is
    :meth:`record_completion`, which persists the terminal state of a
    deployment that was still in progress.
    """

    def __init__(self):
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the storage backend."""
        if not self._initialized:
            await self._setup()
            self._initialized = True

    @abstractmethod
    async def _setup(self) -> None:
        """Setup the storage backend. Override in subclasses."""
        pass

    @abstractmethod
    async def append(self, deployment: Deployment) -> None:
        """Append a new deployment to the history."""
        pass

    @abstractmethod
    async def record_completion(self, deployment: Deployment) -> None:
        """Persist the terminal state of a previously appended deployment."""
        pass

    @abstractmethod
    async def list_deployments(self) -> List[Deployment]:
        """All deployments, oldest first."""
        pass

    @abstractmethod
    async def append_rollback(self, record: RollbackRecord) -> None:
        """Append a rollback record."""
        pass

    @abstractmethod
    async def list_rollbacks(self) -> List[RollbackRecord]:
        """All rollback records, oldest first."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass

    async def get(self, deployment_id: str) -> Optional[Deployment]:
        """Load a deployment by ID."""
        for deployment in await self.list_deployments():
            if deployment.id == deployment_id:
                return deployment
        return None

    async def recent(self, limit: int = 10) -> List[Deployment]:
        """Most recent deployments, newest first."""
        if limit <= 0:
            return []
        deployments = await self.list_deployments()
        return list(reversed(deployments[-limit:]))

    async def get_statistics(self) -> dict:
        """Get statistics about stored deployments."""
        stats = {
            'total': 0,
            'by_status': {status.value: 0 for status in DeploymentStatus},
            'rollbacks': 0,
            'oldest': None,
            'newest': None
        }

        deployments = await self.list_deployments()
        for deployment in deployments:
            stats['by_status'][deployment.status.value] += 1
            stats['total'] += 1
        stats['rollbacks'] = len(await self.list_rollbacks())

        if deployments:
            stats['oldest'] = deployments[0].start_time.isoformat()
            stats['newest'] = deployments[-1].start_time.isoformat()

        logger.debug(f"History statistics: {stats}")
        return stats
