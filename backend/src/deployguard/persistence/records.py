"""JSON record logs for notifications and rollbacks."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

EMAIL_NOTIFICATIONS_FILE = "deployment-notifications.json"
WEBHOOK_NOTIFICATIONS_FILE = "webhook-notifications.json"
ROLLBACK_HISTORY_FILE = "rollback-history.json"


class JsonRecordLog:
    """Append-only list of records kept in a single JSON file.

    The file holds a JSON array; every append rewrites it in full. An
    unreadable file is treated as empty and replaced on the next append.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _load(self) -> list[dict[str, Any]]:
        if not self.path.is_file():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load existing records from {self.path}: {e}")
            return []
        return data if isinstance(data, list) else []

    async def append(self, record: dict[str, Any]) -> None:
        async with self._lock:
            records = self._load()
            records.append(record)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(records, indent=2, default=str), encoding="utf-8")
            logger.debug(f"Appended record to {self.path} ({len(records)} total)")

    async def read_all(self) -> list[dict[str, Any]]:
        async with self._lock:
            return self._load()


class NullRecordLog:
    """Record log that keeps nothing."""

    async def append(self, record: dict[str, Any]) -> None:
        pass

    async def read_all(self) -> list[dict[str, Any]]:
        return []


class MemoryRecordLog:
    """Record log kept in memory. Useful for testing."""

    def __init__(self):
        self.records: list[dict[str, Any]] = []

    async def append(self, record: dict[str, Any]) -> None:
        self.records.append(record)

    async def read_all(self) -> list[dict[str, Any]]:
        return list(self.records)
