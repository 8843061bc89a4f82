import asyncio
import os
import tempfile

import pytest

# Must be set before app.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("MOCK_SEED", "42")
os.environ.setdefault("CACHE_PATH", os.path.join(tempfile.mkdtemp(), "cache.json"))

from app.database import Database  # noqa: E402
from app.storage.local_cache import LocalCache  # noqa: E402

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def cache(tmp_path):
    return LocalCache(str(tmp_path / "cache.json"))


@pytest.fixture
def run_db():
    """Run ``scenario(db)`` on a fresh in-memory database inside one event loop."""

    def runner(scenario):
        async def wrapper():
            db = Database(MEMORY_URL)
            try:
                return await scenario(db)
            finally:
                await db.dispose()

        return asyncio.run(wrapper())

    return runner
