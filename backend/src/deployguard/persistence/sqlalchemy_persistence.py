"""SQLAlchemy-based deployment history store."""
import asyncio
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..deployment.models import Deployment, RollbackRecord
from .base import BaseHistoryStore
from .repository import HistoryRepository


def default_database_url(records_dir: str | Path = ".") -> str:
    """SQLite database next to the other deployment records."""
    path = Path(records_dir)
    path.mkdir(parents=True, exist_ok=True)
    return f"sqlite+aiosqlite:///{(path / 'deployment-history.db').resolve()}"


class SQLAlchemyHistoryStore(BaseHistoryStore):
    """Durable history store, shared by separate CLI invocations."""

    def __init__(self, database_url: str | None = None):
        """Initialize SQLAlchemy storage.

        Args:
            database_url: SQLAlchemy database URL. Defaults to SQLite in the
                current directory.

        """
        super().__init__()
        self.database_url = database_url or default_database_url()
        self.engine = create_async_engine(
            self.database_url,
            echo=False,
            pool_pre_ping=True,
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        self._init_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

    async def _setup(self) -> None:
        from .models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        async with self._init_lock:
            await self.initialize()

    async def append(self, deployment: Deployment) -> None:
        await self._ensure_initialized()

        async with self._write_lock, self.session_factory() as session:
            await HistoryRepository(session).insert_deployment(deployment)

    async def record_completion(self, deployment: Deployment) -> None:
        await self._ensure_initialized()

        async with self._write_lock, self.session_factory() as session:
            await HistoryRepository(session).complete_deployment(deployment)

    async def list_deployments(self) -> list[Deployment]:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            return await HistoryRepository(session).list_deployments()

    async def append_rollback(self, record: RollbackRecord) -> None:
        await self._ensure_initialized()

        async with self._write_lock, self.session_factory() as session:
            await HistoryRepository(session).insert_rollback(record)

    async def list_rollbacks(self) -> list[RollbackRecord]:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            return await HistoryRepository(session).list_rollbacks()

    async def close(self):
        """Close database connections."""
        await self.engine.dispose()
