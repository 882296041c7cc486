"""Repository for deployment history rows."""
import json
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..deployment.models import Deployment, RollbackRecord
from ..exceptions import DeploymentStateError
from ..types import DeploymentStatus
from .models import DeploymentModel, RollbackRecordModel

logger = logging.getLogger(__name__)


class HistoryRepository:
    """Database operations behind :class:`SQLAlchemyHistoryStore`."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert_deployment(self, deployment: Deployment) -> None:
        try:
            existing = await self._find(deployment.id)
            if existing is not None:
                raise DeploymentStateError(deployment.id, f"Deployment {deployment.id} already recorded")

            self.session.add(DeploymentModel(
                deployment_id=deployment.id,
                deployment_type=deployment.type.value,
                status=deployment.status.value,
                start_time=deployment.start_time,
                end_time=deployment.end_time,
                payload=json.dumps(deployment.to_dict()),
            ))
            await self.session.commit()
            logger.debug(f"Recorded deployment {deployment.id}")

        except Exception:
            await self.session.rollback()
            raise

    async def complete_deployment(self, deployment: Deployment) -> None:
        """Write the terminal state of an in-progress row, exactly once."""
        try:
            model = await self._find(deployment.id)
            if model is None:
                raise DeploymentStateError(deployment.id, f"Deployment {deployment.id} is not recorded")
            if model.status != DeploymentStatus.IN_PROGRESS.value:
                raise DeploymentStateError(
                    deployment.id, f"Deployment {deployment.id} is already {model.status}"
                )

            model.status = deployment.status.value
            model.end_time = deployment.end_time
            model.payload = json.dumps(deployment.to_dict())
            await self.session.commit()
            logger.debug(f"Recorded completion of {deployment.id}: {deployment.status.value}")

        except Exception:
            await self.session.rollback()
            raise

    async def list_deployments(self) -> list[Deployment]:
        result = await self.session.execute(
            select(DeploymentModel).order_by(DeploymentModel.sequence)
        )
        return [Deployment.from_dict(json.loads(model.payload)) for model in result.scalars()]

    async def insert_rollback(self, record: RollbackRecord) -> None:
        try:
            self.session.add(RollbackRecordModel(
                original_deployment_id=record.original_deployment_id,
                rollback_deployment_id=record.rollback_deployment.id,
                timestamp=record.timestamp,
                payload=json.dumps(record.to_dict()),
            ))
            await self.session.commit()

        except Exception:
            await self.session.rollback()
            raise

    async def list_rollbacks(self) -> list[RollbackRecord]:
        result = await self.session.execute(
            select(RollbackRecordModel).order_by(RollbackRecordModel.id)
        )
        return [RollbackRecord.from_dict(json.loads(model.payload)) for model in result.scalars()]

    async def count_deployments(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(DeploymentModel))
        return result.scalar_one()

    async def _find(self, deployment_id: str) -> DeploymentModel | None:
        result = await self.session.execute(
            select(DeploymentModel).where(DeploymentModel.deployment_id == deployment_id)
        )
        return result.scalar_one_or_none()
