"""
Shared fixtures for deployguard tests.
"""
import pytest
import pytest_asyncio

from backend.src.deployguard.exceptions import NotificationError, RollbackExecutionError
from backend.src.deployguard.persistence import MemoryHistoryStore, MemoryRecordLog
from backend.tests.deployguard.fakes import RecordingEmailSender, RecordingRollbackExecutor


@pytest_asyncio.fixture
async def store():
    """Empty in-memory history store."""
    history = MemoryHistoryStore()
    yield history
    await history.clear()


@pytest.fixture
def record_log():
    return MemoryRecordLog()


@pytest.fixture
def failing_email_sender():
    return RecordingEmailSender(NotificationError("email", "SMTP relay unreachable"))


@pytest.fixture
def failing_rollback_executor():
    return RecordingRollbackExecutor(RollbackExecutionError("deploy-1", "restore script exited 2"))
