from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Restaurant Booking Core'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Database (asyncpg in production, aiosqlite for local runs and tests)
    DATABASE_URL_ASYNC: str = 'sqlite+aiosqlite:///./restaurant_booking.db'
    DB_ECHO: bool = False
    DB_POOL_PRE_PING: bool = True

    # Cache
    CACHE_BACKEND: Literal['memory', 'redis'] = 'memory'
    CACHE_DEFAULT_TTL_SECONDS: int = 60
    CACHE_SWEEP_INTERVAL_SECONDS: int = 120  # 0 = lazy expiry only
    CACHE_OPERATION_TIMEOUT_SECONDS: float = 0.5
    CACHE_KEY_VERSION: str = 'v1'

    # Redis (only read when CACHE_BACKEND == 'redis')
    REDIS_HOST: str = 'localhost'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: SecretStr = SecretStr('')
    REDIS_KEY_PREFIX: str = ''
    REDIS_DECODE_RESPONSES: bool = False  # values are orjson bytes
    REDIS_POOL_MAX_CONNECTIONS: int = 50
    REDIS_POOL_SOCKET_TIMEOUT: float = 1.0
    REDIS_POOL_SOCKET_CONNECT_TIMEOUT: float = 1.0

    # Reservations
    RESERVATION_DEFAULT_PAGE_SIZE: int = 10

    @field_validator('CACHE_KEY_VERSION')
    @classmethod
    def validate_cache_key_version(cls, v: str) -> str:
        if not v or ':' in v:
            raise ValueError('CACHE_KEY_VERSION must be non-empty and must not contain ":"')
        return v

    @property
    def REDIS_URL(self) -> str:
        return f'redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}'


settings = Settings()  # type: ignore
