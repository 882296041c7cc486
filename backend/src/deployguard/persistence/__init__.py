"""Deployment history and record storage."""
from .base import BaseHistoryStore
from .memory import MemoryHistoryStore
from .records import (
    EMAIL_NOTIFICATIONS_FILE,
    ROLLBACK_HISTORY_FILE,
    WEBHOOK_NOTIFICATIONS_FILE,
    JsonRecordLog,
    MemoryRecordLog,
    NullRecordLog,
)
from .sqlalchemy_persistence import SQLAlchemyHistoryStore, default_database_url

__all__ = [
    'BaseHistoryStore',
    'MemoryHistoryStore',
    'SQLAlchemyHistoryStore',
    'default_database_url',
    'JsonRecordLog',
    'MemoryRecordLog',
    'NullRecordLog',
    'EMAIL_NOTIFICATIONS_FILE',
    'WEBHOOK_NOTIFICATIONS_FILE',
    'ROLLBACK_HISTORY_FILE',
]
