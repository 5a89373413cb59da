import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from upload_handler.config.settings import Settings
from upload_handler.database.connection import close_pool, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "uploads_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest_asyncio.fixture
async def integration_pool(test_settings: Settings) -> AsyncGenerator[None, None]:
    try:
        await init_pool(test_settings)
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        await close_pool()
