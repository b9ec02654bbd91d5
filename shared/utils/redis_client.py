"""
Redis client used as the hot store: article metadata, the archive queue and
the recency index.

Every redis error is re-raised as BackendUnavailable so callers deal with a
single failure type.
"""

from contextlib import contextmanager
from typing import Callable, List, Optional, Sequence, Tuple

import redis

from shared.app_logging.logger import get_logger
from shared.config.settings import RedisSettings, get_settings
from shared.storage.errors import BackendUnavailable


class RedisClient:
    """Redis client with lazy connection pooling and error translation."""

    def __init__(
        self,
        service_name: str,
        settings: Optional[RedisSettings] = None,
        connection: Optional[redis.Redis] = None,
    ):
        self.service_name = service_name
        self.settings = settings or get_settings().redis
        self._client: Optional[redis.Redis] = connection
        self._logger = get_logger(f"shared.{service_name}.redis")

    @contextmanager
    def _errors(self, action: str):
        try:
            yield
        except redis.RedisError as e:
            self._logger.error(f"Redis {action} failed: {e}")
            raise BackendUnavailable(f"redis {action} failed: {e}") from e

    def _get_client(self) -> redis.Redis:
        """Get or create Redis client with connection pooling."""
        if self._client is None:
            with self._errors("connect"):
                client = redis.from_url(
                    self.settings.connection_url(),
                    decode_responses=True,
                    socket_timeout=self.settings.redis_timeout,
                    socket_connect_timeout=self.settings.redis_timeout,
                    retry_on_timeout=True,
                    max_connections=20,
                    health_check_interval=30,
                )
                client.ping()
            self._client = client
            self._logger.info("Connected to Redis")
        return self._client

    def connect(self) -> "RedisClient":
        """Probe the server; raises BackendUnavailable when unreachable."""
        self.ping()
        return self

    def ping(self) -> bool:
        with self._errors("ping"):
            return bool(self._get_client().ping())

    def get(self, key: str) -> Optional[str]:
        with self._errors(f"GET {key}"):
            return self._get_client().get(key)

    def mget(self, keys: Sequence[str]) -> List[Optional[str]]:
        if not keys:
            return []
        with self._errors("MGET"):
            return self._get_client().mget(list(keys))

    def lrange(self, key: str, start: int, end: int) -> List[str]:
        with self._errors(f"LRANGE {key}"):
            return self._get_client().lrange(key, start, end)

    def llen(self, key: str) -> int:
        with self._errors(f"LLEN {key}"):
            return self._get_client().llen(key)

    def brpop(self, key: str, timeout: int) -> Optional[Tuple[str, str]]:
        """Blocking right pop; returns (key, value) or None on timeout."""
        with self._errors(f"BRPOP {key}"):
            return self._get_client().brpop([key], timeout=timeout)

    def transaction(self, func: Callable[[redis.client.Pipeline], None], *watches: str):
        """Run ``func`` inside WATCH/MULTI, retried by redis-py on WatchError."""
        with self._errors("transaction"):
            return self._get_client().transaction(func, *watches, value_from_callable=True)

    def close(self):
        """Close Redis connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._logger.info("Redis connection closed")
