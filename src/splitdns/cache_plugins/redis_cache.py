from __future__ import annotations

import importlib
import logging
from typing import Any, Optional

from .base import CACHE_TTL_SECONDS, CachePlugin, cache_aliases

logger = logging.getLogger(__name__)


def _import_redis() -> Any:
    """Brief: Import the `redis` client library.

    Inputs:
      - None.

    Outputs:
      - redis module.

    Notes:
      - Imported lazily so that importing splitdns.cache_plugins does not open
        or require anything until a Redis cache is actually configured.
    """

    try:
        return importlib.import_module("redis")
    except Exception as exc:  # pragma: no cover
        raise ImportError(
            "RedisCache requires the 'redis' dependency. "
            "Install it with: pip install redis"
        ) from exc


def _build_retry(max_retries: int) -> Any:
    """Brief: Build a redis-py Retry policy for max_retries attempts.

    Inputs:
      - max_retries: number of retries after the first failure (> 0).

    Outputs:
      - redis.retry.Retry instance without backoff.
    """

    retry_mod = importlib.import_module("redis.retry")
    backoff_mod = importlib.import_module("redis.backoff")
    return retry_mod.Retry(backoff_mod.NoBackoff(), int(max_retries))


@cache_aliases("redis", "valkey")
class RedisCache(CachePlugin):
    """Redis/Valkey-backed address cache.

    Brief:
      Stores ``namespace + fqdn`` -> dotted IPv4 with ``SET key value EX ttl``
      and reads it back with ``GET key``. Redis expires the keys itself.
      Errors talking to Redis are logged and reported as a miss (get) or
      dropped (set); they never reach the DNS answer path.

    Inputs:
      - **config:
          - url (str): Redis URL (e.g. redis://localhost:6379/0). When provided,
            it takes precedence over host/port/db.
          - host (str): Redis host (default '127.0.0.1').
          - port (int): Redis port (default 6379).
          - db (int): Redis DB index (default 0).
          - username (str|None): Optional Redis username.
          - password (str|None): Optional Redis password.
          - timeout (float|None): socket and connect timeout in seconds
            (default 1.0).
          - max_retries (int): retries per command (default 0, no retries).
          - namespace (str): key prefix (default '').
          - ttl (int): entry lifetime in seconds (default 12 hours).

    Outputs:
      - RedisCache instance.

    Example:
      cache:
        module: redis
        config:
          host: 127.0.0.1
          password: secret
          db: 2
    """

    def __init__(self, **config: object) -> None:
        namespace = config.get("namespace", "")
        self.namespace: str = namespace if isinstance(namespace, str) else ""

        try:
            self.ttl = int(config.get("ttl", CACHE_TTL_SECONDS) or CACHE_TTL_SECONDS)
        except (TypeError, ValueError):
            self.ttl = CACHE_TTL_SECONDS

        timeout = config.get("timeout", 1.0)
        try:
            timeout = float(timeout) if timeout is not None else None
        except (TypeError, ValueError):
            timeout = 1.0

        try:
            max_retries = int(config.get("max_retries", 0) or 0)
        except (TypeError, ValueError):
            max_retries = 0

        redis = _import_redis()

        extra = {}
        if max_retries > 0:
            extra["retry"] = _build_retry(max_retries)

        url = config.get("url")
        if isinstance(url, str) and url.strip():
            self._client = redis.Redis.from_url(
                url.strip(),
                decode_responses=True,
                socket_timeout=timeout,
                **extra,
            )
            return

        host = str(config.get("host", "127.0.0.1") or "127.0.0.1")
        try:
            port = int(config.get("port", 6379) or 6379)
        except (TypeError, ValueError):
            port = 6379
        try:
            db = int(config.get("db", 0) or 0)
        except (TypeError, ValueError):
            db = 0

        username = config.get("username")
        password = config.get("password")

        self._client = redis.Redis(
            host=host,
            port=port,
            db=db,
            username=str(username) if isinstance(username, str) and username else None,
            password=str(password) if isinstance(password, str) and password else None,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
            decode_responses=True,
            **extra,
        )

    def _redis_key(self, name: str) -> str:
        return f"{self.namespace}{name}"

    def get(self, name: str) -> Optional[str]:
        """Brief: GET the cached address for name.

        Inputs:
          - name: normalized FQDN.

        Outputs:
          - Optional[str]: cached address; None on miss or Redis error.
        """

        try:
            value = self._client.get(self._redis_key(name))
        except Exception as e:
            logger.warning("Redis GET %s failed: %s", name, e)
            return None
        if value is None:
            return None
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("ascii", errors="replace")
        return str(value)

    def set(self, name: str, address: str) -> None:
        """Brief: SET name -> address with a fixed expiry.

        Inputs:
          - name: normalized FQDN.
          - address: dotted IPv4 address.

        Outputs:
          - None; failures are logged and dropped.
        """

        try:
            self._client.set(self._redis_key(name), str(address), ex=int(self.ttl))
        except Exception as e:
            logger.warning("Redis SET %s failed: %s", name, e)

    def close(self) -> None:
        try:
            self._client.close()
        except Exception as e:  # pragma: no cover - best-effort shutdown
            logger.debug("Redis close failed: %s", e)
