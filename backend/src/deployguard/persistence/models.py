"""SQLAlchemy models for deployment history persistence."""
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class DeploymentModel(Base):
    """One row per deployment attempt.

    ``sequence`` preserves insertion order. The full deployment, including
    phases and logs, is kept as JSON in ``payload``; the other columns
    exist for filtering.
    """

    __tablename__ = 'deployments'

    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deployment_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    deployment_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # JSON serialized

    def __repr__(self) -> str:
        return (
            f"<DeploymentModel(deployment_id='{self.deployment_id}', "
            f"type='{self.deployment_type}', status='{self.status}')>"
        )


class RollbackRecordModel(Base):
    """Append-only log linking failed deployments to their rollbacks."""

    __tablename__ = 'rollback_records'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    original_deployment_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    rollback_deployment_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey('deployments.deployment_id', ondelete='CASCADE'),
        nullable=True,
    )
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)  # JSON serialized

    def __repr__(self) -> str:
        return (
            f"<RollbackRecordModel(original='{self.original_deployment_id}', "
            f"rollback='{self.rollback_deployment_id}')>"
        )
