"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/providers/selector.html
"""

from dependency_injector import containers, providers

from src.platform.cache.cache_key_builder import CacheKeyBuilder
from src.platform.cache.in_memory_cache_store import InMemoryCacheStore
from src.platform.cache.redis_cache_store import RedisCacheStore, build_redis_client
from src.platform.config.core_setting import Settings
from src.platform.database.orm_db_setting import Database
from src.platform.database.unit_of_work import unit_of_work_factory
from src.platform.logging.loguru_io import Logger
from src.service.table_reservation.app.command.booking_transaction_manager import (
    BookingTransactionManager,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (engine is built lazily on first session)
    database = providers.Singleton(
        Database,
        url=config_service.provided.DATABASE_URL_ASYNC,
        echo=config_service.provided.DB_ECHO,
    )

    # One unit of work (= one transaction) per call of the factory
    uow_factory = providers.Callable(unit_of_work_factory, database=database)

    # Cache: one shared store per process, chosen by CACHE_BACKEND
    redis_client = providers.Singleton(build_redis_client, settings=config_service)
    cache_store = providers.Selector(
        config_service.provided.CACHE_BACKEND,
        memory=providers.Singleton(
            InMemoryCacheStore,
            sweep_interval_seconds=config_service.provided.CACHE_SWEEP_INTERVAL_SECONDS,
        ),
        redis=providers.Singleton(
            RedisCacheStore,
            client=redis_client,
            namespace=config_service.provided.REDIS_KEY_PREFIX,
        ),
    )
    cache_key_builder = providers.Singleton(
        CacheKeyBuilder, version=config_service.provided.CACHE_KEY_VERSION
    )

    # Booking engine
    booking_transaction_manager = providers.Singleton(
        BookingTransactionManager,
        uow_factory=uow_factory,
        cache_store=cache_store,
        key_builder=cache_key_builder,
        cache_ttl_seconds=config_service.provided.CACHE_DEFAULT_TTL_SECONDS,
    )


container = Container()


async def setup() -> None:
    """Must run inside the event loop: starts the in-memory sweeper"""
    cache_store = container.cache_store()
    if isinstance(cache_store, InMemoryCacheStore):
        cache_store.start_sweeper()
    Logger.base.info(f'🚀 [DI] Cache backend: {type(cache_store).__name__}')


async def cleanup() -> None:
    cache_store = container.cache_store()
    if isinstance(cache_store, InMemoryCacheStore):
        await cache_store.stop_sweeper()
    elif isinstance(cache_store, RedisCacheStore):
        await cache_store.client.aclose()

    await container.database().dispose()
    container.reset_singletons()
