"""Tests for shell command and health check executors."""
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from backend.src.deployguard.deployment.executors import (
    CommandPhaseExecutor,
    CommandRollbackExecutor,
    run_shell_command,
)
from backend.src.deployguard.deployment.models import Deployment
from backend.src.deployguard.exceptions import PhaseExecutionError, RollbackExecutionError


@pytest_asyncio.fixture
async def health_server():
    """Health endpoint answering 200 on /ok and 503 on /down."""
    async def ok(request):
        return web.Response(text="ok")

    async def down(request):
        return web.Response(status=503, text="unavailable")

    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/down", down)
    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest.mark.asyncio
async def test_run_shell_command_merges_output(tmp_path):
    returncode, output = await run_shell_command("echo out; echo err 1>&2", timeout=10, cwd=str(tmp_path))

    assert returncode == 0
    assert "out" in output
    assert "err" in output


class TestCommandPhaseExecutor:
    """Test phases backed by shell commands."""

    @pytest.mark.asyncio
    async def test_successful_command(self, tmp_path):
        executor = CommandPhaseExecutor({"build": "touch built.txt"}, cwd=str(tmp_path))

        await executor.run_phase("build", Deployment(id="deploy-1"))

        assert (tmp_path / "built.txt").exists()

    @pytest.mark.asyncio
    async def test_phase_without_command_succeeds(self):
        await CommandPhaseExecutor({}).run_phase("provision", Deployment(id="deploy-1"))

    @pytest.mark.asyncio
    async def test_failing_command(self, tmp_path):
        executor = CommandPhaseExecutor({"deploy": "echo upload rejected; exit 4"}, cwd=str(tmp_path))

        with pytest.raises(PhaseExecutionError) as exc_info:
            await executor.run_phase("deploy", Deployment(id="deploy-1"))

        assert exc_info.value.phase == "deploy"
        assert exc_info.value.reason.startswith("deploy phase failed (exit code 4)")
        assert "upload rejected" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_command_timeout(self, tmp_path):
        executor = CommandPhaseExecutor({"build": "sleep 5"}, timeout=0.2, cwd=str(tmp_path))

        with pytest.raises(PhaseExecutionError) as exc_info:
            await executor.run_phase("build", Deployment(id="deploy-1"))

        assert "timed out" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_health_check_passes(self, health_server):
        executor = CommandPhaseExecutor({}, health_check_url=str(health_server.make_url("/ok")))

        await executor.run_phase("verify", Deployment(id="deploy-1"))

    @pytest.mark.asyncio
    async def test_health_check_failure(self, health_server):
        executor = CommandPhaseExecutor({}, health_check_url=str(health_server.make_url("/down")))

        with pytest.raises(PhaseExecutionError) as exc_info:
            await executor.run_phase("verify", Deployment(id="deploy-1"))

        assert exc_info.value.reason == "Health check returned HTTP 503"

    @pytest.mark.asyncio
    async def test_health_check_only_in_verify(self, health_server):
        executor = CommandPhaseExecutor({}, health_check_url=str(health_server.make_url("/down")))

        await executor.run_phase("deploy", Deployment(id="deploy-1"))


class TestCommandRollbackExecutor:
    """Test rollback commands."""

    @pytest.mark.asyncio
    async def test_target_is_substituted(self, tmp_path):
        executor = CommandRollbackExecutor("echo {target} > restored.txt", cwd=str(tmp_path))

        await executor.restore("deploy-41")

        assert (tmp_path / "restored.txt").read_text().strip() == "deploy-41"

    @pytest.mark.asyncio
    async def test_target_is_shell_quoted(self, tmp_path):
        executor = CommandRollbackExecutor("echo {target} > restored.txt", cwd=str(tmp_path))

        await executor.restore("deploy-1; touch injected.txt")

        assert not (tmp_path / "injected.txt").exists()
        assert (tmp_path / "restored.txt").read_text().strip() == "deploy-1; touch injected.txt"

    @pytest.mark.asyncio
    async def test_failure_raises(self, tmp_path):
        executor = CommandRollbackExecutor("exit 2", cwd=str(tmp_path))

        with pytest.raises(RollbackExecutionError) as exc_info:
            await executor.restore("deploy-41")

        assert exc_info.value.target_deployment_id == "deploy-41"
        assert "exit code 2" in exc_info.value.message
