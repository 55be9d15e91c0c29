from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')

# Values copied from setup guides that were never filled in
_PLACEHOLDER_MARKERS = (
    'your-',
    'replace_with',
    'example',
)


def is_placeholder(value: str | None) -> bool:
    """Missing values and unedited template values are treated the same way."""
    if not value:
        return True
    lower = value.lower()
    return any(marker in lower for marker in _PLACEHOLDER_MARKERS)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Campus Study Spaces'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production
    BACKEND_CORS_ORIGINS: list[str] = ['http://localhost:3000', 'http://localhost:5173']

    # Seat store backend
    SEAT_STORE_BACKEND: Literal['kvrocks', 'in_memory'] = 'kvrocks'
    SEAT_TABLE: str = 'lrc_seats'
    DEFAULT_BOOKING_MINUTES: int = 60

    # Identity
    SESSION_TOKEN: SecretStr | None = None  # Issued by the hosted backend at sign-in
    DEV_USER_ID: str | None = None  # Only used by the in-memory store

    # Watch-list (client-local durable storage)
    WATCH_LIST_PATH: str = str(_PROJECT_ROOT / 'local_storage' / 'study_space.json')
    WATCH_LIST_NAMESPACE: str = 'lrc_notify_list'

    # Kvrocks Configuration (Redis protocol + Kvrocks storage)
    KVROCKS_HOST: str = 'localhost'
    KVROCKS_PORT: int = 6666
    KVROCKS_DB: int = 0
    KVROCKS_PASSWORD: str = ''
    KVROCKS_KEY_PREFIX: str = ''
    REDIS_DECODE_RESPONSES: bool = True

    # Kvrocks Connection Pool Configuration
    KVROCKS_POOL_MAX_CONNECTIONS: int = 20
    KVROCKS_POOL_SOCKET_TIMEOUT: int = 10  # Socket read/write timeout (seconds)
    KVROCKS_POOL_SOCKET_CONNECT_TIMEOUT: int = 10  # Connection timeout (seconds)
    KVROCKS_POOL_SOCKET_KEEPALIVE: bool = True
    KVROCKS_POOL_HEALTH_CHECK_INTERVAL: int = 30  # Health check interval (seconds)

    # Change feed
    SUBSCRIPTION_BUFFER_SIZE: int = 256

    @field_validator('DEFAULT_BOOKING_MINUTES')
    @classmethod
    def validate_default_booking_minutes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError('DEFAULT_BOOKING_MINUTES must be positive')
        return v

    @property
    def use_in_memory_store(self) -> bool:
        if self.SEAT_STORE_BACKEND == 'in_memory':
            return True
        return is_placeholder(self.KVROCKS_HOST)

    @property
    def kvrocks_url(self) -> str:
        return f'redis://{self.KVROCKS_HOST}:{self.KVROCKS_PORT}/{self.KVROCKS_DB}'


settings = Settings()  # type: ignore
