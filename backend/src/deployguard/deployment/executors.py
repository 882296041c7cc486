"""
Phase and rollback executors.

The simulated executors stand in for real infrastructure work; the command
executors run shell commands configured per phase.
"""
import asyncio
import logging
import random
import shlex
from typing import Mapping, Optional

import aiohttp

from ..exceptions import PhaseExecutionError, RollbackExecutionError
from .models import Deployment

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 45 * 60.0
OUTPUT_TAIL_CHARS = 500


async def run_shell_command(command: str, timeout: float, cwd: Optional[str] = None) -> tuple[int, str]:
    """Run ``command`` in a shell and return (exit code, combined output)."""
    process = await asyncio.create_subprocess_shell(
        command,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise
    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    return process.returncode, output


class NoOpPhaseExecutor:
    """Every phase succeeds immediately."""

    async def run_phase(self, name: str, deployment: Deployment) -> None:
        pass


class SimulatedPhaseExecutor:
    """Sleeps for a random time per phase and fails at a configurable rate."""

    def __init__(
        self,
        min_delay: float = 1.0,
        max_delay: float = 3.0,
        failure_rate: float = 0.05,
        rng: Optional[random.Random] = None
    ):
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()

    async def run_phase(self, name: str, deployment: Deployment) -> None:
        await asyncio.sleep(self.rng.uniform(self.min_delay, self.max_delay))
        if self.rng.random() < self.failure_rate:
            raise PhaseExecutionError(name, f"{name} phase failed")


class CommandPhaseExecutor:
    """Runs one shell command per phase.

    Phases without a command succeed immediately. When ``health_check_url``
    is set, the ``verify`` phase additionally requires a 2xx answer from it.
    """

    def __init__(
        self,
        commands: Mapping[str, Optional[str]],
        timeout: float = DEFAULT_COMMAND_TIMEOUT,
        cwd: Optional[str] = None,
        health_check_url: Optional[str] = None,
        health_check_timeout: float = 30.0
    ):
        self.commands = dict(commands)
        self.timeout = timeout
        self.cwd = cwd
        self.health_check_url = health_check_url
        self.health_check_timeout = health_check_timeout

    async def run_phase(self, name: str, deployment: Deployment) -> None:
        command = self.commands.get(name)
        if command:
            await self._run_command(name, command)
        else:
            logger.debug(f"No command configured for {name} phase")

        if name == "verify" and self.health_check_url:
            await self._health_check(name)

    async def _run_command(self, name: str, command: str) -> None:
        logger.debug(f"Running {name} command: {command}")
        try:
            returncode, output = await run_shell_command(command, self.timeout, self.cwd)
        except asyncio.TimeoutError:
            raise PhaseExecutionError(name, f"{name} phase timed out after {self.timeout:.0f}s")
        except OSError as e:
            raise PhaseExecutionError(name, f"{name} phase could not start: {e}")

        if returncode != 0:
            tail = output.strip()[-OUTPUT_TAIL_CHARS:]
            raise PhaseExecutionError(name, f"{name} phase failed (exit code {returncode}): {tail}")

    async def _health_check(self, name: str) -> None:
        timeout = aiohttp.ClientTimeout(total=self.health_check_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.health_check_url) as response:
                    if response.status >= 400:
                        raise PhaseExecutionError(
                            name, f"Health check returned HTTP {response.status}"
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PhaseExecutionError(name, f"Health check failed: {e}")


class NoOpRollbackExecutor:
    """Restore succeeds immediately."""

    async def restore(self, target_deployment_id: str) -> None:
        pass


class SimulatedRollbackExecutor:
    """Sleeps to simulate a restore."""

    def __init__(self, delay: float = 3.0):
        self.delay = delay

    async def restore(self, target_deployment_id: str) -> None:
        logger.debug(f"Simulating restore of {target_deployment_id}")
        await asyncio.sleep(self.delay)


class CommandRollbackExecutor:
    """Runs a shell command to restore a deployment.

    ``{target}`` in the command is replaced by the shell-quoted target
    deployment ID.
    """

    def __init__(self, command: str, timeout: float = DEFAULT_COMMAND_TIMEOUT, cwd: Optional[str] = None):
        self.command = command
        self.timeout = timeout
        self.cwd = cwd

    async def restore(self, target_deployment_id: str) -> None:
        command = self.command.replace("{target}", shlex.quote(target_deployment_id))
        try:
            returncode, output = await run_shell_command(command, self.timeout, self.cwd)
        except asyncio.TimeoutError:
            raise RollbackExecutionError(
                target_deployment_id, f"Rollback timed out after {self.timeout:.0f}s"
            )
        except OSError as e:
            raise RollbackExecutionError(target_deployment_id, f"Rollback could not start: {e}")

        if returncode != 0:
            tail = output.strip()[-OUTPUT_TAIL_CHARS:]
            raise RollbackExecutionError(
                target_deployment_id, f"Rollback command failed (exit code {returncode}): {tail}"
            )
