"""Tests for the in-memory store."""

from datetime import UTC, datetime, timedelta

from tickerflow.data.requests import RequestKey
from tickerflow.data.store import InMemoryStore, StoreRecord


class TestInMemoryStore:
    """Tests for InMemoryStore."""

    async def test_save_and_get(self) -> None:
        """Saved records are returned by key."""
        store = InMemoryStore()
        key = RequestKey.quote("AAPL")
        record = StoreRecord(key=key, value=150, last_updated=datetime.now(UTC))

        await store.save(record)

        assert await store.get(key) == record
        assert store.saves == 1
        assert store.reads == 1
        assert len(store) == 1

    async def test_missing_key(self) -> None:
        """Unknown keys return None."""
        assert await InMemoryStore().get(RequestKey.quote("AAPL")) is None

    async def test_save_replaces(self) -> None:
        """A newer record replaces the previous one."""
        store = InMemoryStore()
        key = RequestKey.quote("AAPL")
        now = datetime.now(UTC)

        await store.save(StoreRecord(key=key, value=1, last_updated=now))
        await store.save(StoreRecord(key=key, value=2, last_updated=now))

        record = await store.get(key)
        assert record is not None
        assert record.value == 2
        assert len(store) == 1


class TestStoreRecord:
    """Tests for StoreRecord."""

    def test_age(self) -> None:
        """Age is measured in seconds since the last update."""
        now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        record = StoreRecord(
            key=RequestKey.quote("AAPL"), value=1, last_updated=now - timedelta(seconds=90)
        )

        assert record.age(now) == 90.0
