"""Drives a deployment through its phases."""
import logging

from ..exceptions import PhaseExecutionError
from ..types import PhaseExecutor
from .models import Deployment

logger = logging.getLogger(__name__)

PHASE_MESSAGES: dict[str, str] = {
    "provision": "Provisioning resources...",
    "build": "Building application...",
    "deploy": "Deploying application...",
    "verify": "Verifying deployment...",
}


class PhaseTracker:
    """Runs the phases of one deployment strictly in order.

    Each phase is awaited to completion before the next one starts. The
    first failing phase halts the deployment; later phases stay PENDING.
    Failed phases are not retried.
    """

    def __init__(self, executor: PhaseExecutor):
        self.executor = executor

    async def run(self, deployment: Deployment) -> bool:
        """Run all phases and move ``deployment`` to a terminal state.

        Returns True when every phase succeeded.
        """
        for name in list(deployment.phases):
            reason = await self.run_phase(deployment, name)
            if reason is not None:
                deployment.complete(False, error=reason)
                logger.error(f"Deployment {deployment.id} failed in {name} phase: {reason}")
                return False

        deployment.complete(True)
        logger.info(f"Deployment {deployment.id} completed in {deployment.duration:.2f}s")
        return True

    async def run_phase(self, deployment: Deployment, name: str) -> str | None:
        """Run a single phase. Returns the failure reason, or None on success."""
        message = PHASE_MESSAGES.get(name, f"Running {name} phase...")
        deployment.start_phase(name)
        deployment.add_log(name, message)
        logger.info(f"[{deployment.id}] {message}")

        try:
            await self.executor.run_phase(name, deployment)
        except PhaseExecutionError as e:
            reason = e.reason
        except Exception as e:
            reason = f"{name} phase failed: {e}"
        else:
            deployment.finish_phase(name, success=True)
            logger.info(f"[{deployment.id}] {name} phase completed")
            return None

        deployment.finish_phase(name, success=False)
        deployment.add_log(name, reason, level="ERROR")
        return reason
