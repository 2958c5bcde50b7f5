"""
Test Configuration and Fixtures

- Environment is set before any application import (settings are read at import time)
- Unit tests: in-memory cache store with a fake clock, AsyncMock repositories
- Integration tests: real repositories + unit of work on in-memory SQLite (aiosqlite)
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# =============================================================================
import os
from pathlib import Path


def _early_setup_test_environment() -> None:
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    os.environ.setdefault('DEBUG', 'true')
    os.environ['DATABASE_URL_ASYNC'] = 'sqlite+aiosqlite:///:memory:'
    os.environ['CACHE_BACKEND'] = 'memory'
    os.environ['CACHE_SWEEP_INTERVAL_SECONDS'] = '0'
    os.environ['CACHE_KEY_VERSION'] = 'v1'


_early_setup_test_environment()

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from typing import Iterable  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from src.platform.cache.cache_key_builder import CacheKeyBuilder  # noqa: E402
from src.platform.cache.in_memory_cache_store import InMemoryCacheStore  # noqa: E402
from src.platform.database.orm_db_setting import Database  # noqa: E402
from src.platform.database.unit_of_work import unit_of_work_factory  # noqa: E402
from src.service.table_reservation.app.command.booking_transaction_manager import (  # noqa: E402
    BookingTransactionManager,
)
from src.service.table_reservation.driven_adapter.model.restaurant_table_model import (  # noqa: E402
    RestaurantTableModel,
)


class FakeClock:
    """Monotonic clock the test moves by hand"""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_store(fake_clock: FakeClock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock=fake_clock, sweep_interval_seconds=0)


@pytest.fixture
def key_builder() -> CacheKeyBuilder:
    return CacheKeyBuilder(version='v1')


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Fresh in-memory SQLite schema per test"""
    db = Database(url='sqlite+aiosqlite:///:memory:', echo=False)
    await db.create_tables()
    yield db
    await db.dispose()


async def _seed_tables(database: Database, table_ids: Iterable[int]) -> None:
    async with database.session() as session:
        for table_id in table_ids:
            session.add(
                RestaurantTableModel(id=table_id, table_number=table_id, capacity=4)
            )
        await session.commit()


@pytest.fixture
def table_seeder(database: Database) -> Callable[[Iterable[int]], Awaitable[None]]:
    """Insert restaurant tables whose id and number are the given ids"""

    async def _seed(table_ids: Iterable[int]) -> None:
        await _seed_tables(database, table_ids)

    return _seed


@pytest_asyncio.fixture
async def booking_manager(
    database: Database, cache_store: InMemoryCacheStore, key_builder: CacheKeyBuilder
) -> BookingTransactionManager:
    await _seed_tables(database, [1, 2, 3, 5])
    return BookingTransactionManager(
        uow_factory=unit_of_work_factory(database),
        cache_store=cache_store,
        key_builder=key_builder,
    )
