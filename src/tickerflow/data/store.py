"""Persistent store interface used as the second cache tier."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..utils.logging import get_logger
from .requests import RequestKey

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoreRecord:
    """A persisted value and when it was last refreshed from a provider."""

    key: RequestKey
    value: Any
    last_updated: datetime

    def age(self, now: datetime) -> float:
        """Age of the record in seconds."""
        return (now - self.last_updated).total_seconds()


class Store(ABC):
    """Abstract base class for durable storage of resolved values.

    Only real provider data is ever saved; synthesized values never reach a store.
    """

    @abstractmethod
    async def get(self, key: RequestKey) -> StoreRecord | None:
        """Get the latest record for a key.

        Args:
            key: Request key

        Returns:
            The record, or None if nothing was stored
        """
        pass

    @abstractmethod
    async def save(self, record: StoreRecord) -> None:
        """Persist a record, replacing any previous record for its key.

        Args:
            record: Record to persist
        """
        pass


class InMemoryStore(Store):
    """Dictionary-backed store for development and tests."""

    def __init__(self) -> None:
        self._records: dict[RequestKey, StoreRecord] = {}
        self._lock = asyncio.Lock()
        self.reads = 0
        self.saves = 0

    async def get(self, key: RequestKey) -> StoreRecord | None:
        async with self._lock:
            self.reads += 1
            return self._records.get(key)

    async def save(self, record: StoreRecord) -> None:
        async with self._lock:
            self.saves += 1
            self._records[record.key] = record
        logger.debug("store_saved", key=str(record.key))

    def __len__(self) -> int:
        return len(self._records)
