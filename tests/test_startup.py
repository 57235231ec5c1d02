"""
Tests for configuration-driven wiring.
"""

import pytest
from jose import jwt

from tarot_app.config import Settings
from tarot_app.core.security import decode_user_id
from tarot_app.core.startup import build_reading_store
from tarot_app.data.database import to_async_database_url
from tarot_app.services.database.tarot_database_services import DatabaseReadingStore
from tarot_app.services.storage.local_storage import LocalReadingStore

pytestmark = pytest.mark.anyio


class TestBuildReadingStore:
    """STORAGE_BACKEND selects the store variant."""

    async def test_local(self, tmp_path, catalog):
        settings = Settings(STORAGE_BACKEND="local", LOCAL_STORAGE_PATH=str(tmp_path / "r.json"))
        store = await build_reading_store(settings, catalog)
        assert isinstance(store, LocalReadingStore)

    async def test_sqlite_database(self, tmp_path, catalog):
        settings = Settings(STORAGE_BACKEND="database", DATABASE_URL=f"sqlite:///{tmp_path / 'r.db'}")
        store = await build_reading_store(settings, catalog)
        try:
            assert isinstance(store, DatabaseReadingStore)
            reading = await store.create("general", ["the-fool", "the-sun", "the-moon"])
            assert (await store.get(reading.id)).cards == ["the-fool", "the-sun", "the-moon"]
        finally:
            await store.close()

    async def test_database_needs_url(self, catalog):
        with pytest.raises(RuntimeError):
            await build_reading_store(Settings(STORAGE_BACKEND="database", DATABASE_URL=None), catalog)

    async def test_unknown_backend(self, catalog):
        with pytest.raises(RuntimeError):
            await build_reading_store(Settings(STORAGE_BACKEND="redis"), catalog)


class TestDatabaseUrl:
    """Driver rewriting for the async engine."""

    def test_postgres(self):
        assert to_async_database_url("postgresql://u:p@db/tarot") == "postgresql+asyncpg://u:p@db/tarot"

    def test_sqlite(self):
        assert to_async_database_url("sqlite:///tarot.db") == "sqlite+aiosqlite:///tarot.db"

    def test_already_async(self):
        assert to_async_database_url("postgresql+asyncpg://db/tarot") == "postgresql+asyncpg://db/tarot"


class TestDecodeUserId:
    """Optional user identification from access tokens."""

    def test_valid_token(self):
        token = jwt.encode({"sub": "user-1", "type": "access"}, "k", algorithm="HS256")
        assert decode_user_id(token, "k") == "user-1"

    def test_refresh_token_is_ignored(self):
        token = jwt.encode({"sub": "user-1", "type": "refresh"}, "k", algorithm="HS256")
        assert decode_user_id(token, "k") is None

    def test_wrong_key(self):
        token = jwt.encode({"sub": "user-1"}, "k", algorithm="HS256")
        assert decode_user_id(token, "other") is None
