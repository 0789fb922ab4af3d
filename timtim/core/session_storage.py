"""Redis-backed session storage holding JSON values, with a degraded no-op mode."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Generic, Iterable, TypeVar

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from timtim.core.constants import CART_KEY_PREFIX, SHIPPING_KEY_PREFIX, STORAGE_PROBE_KEY
from timtim.core.exceptions import StorageErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError)


@dataclass(frozen=True, slots=True)
class StorageResult(Generic[T]):
    """Value of a storage operation plus the reason it fell back, if any."""

    value: T
    error: StorageErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_quota_error(exc: BaseException) -> bool:
    """Redis reports a full ``maxmemory`` budget as an ``OOM`` response."""
    return isinstance(exc, ResponseError) and str(exc).startswith("OOM")


class KeyValueStore:
    """JSON key/value access to one session's storage scope.

    Availability is probed once at construction. When the backend is missing
    or unreachable every operation becomes a no-op: reads return the supplied
    default and writes return ``False``. Nothing here raises to the caller.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        redis_url: str | None = None,
        evictable_prefixes: Iterable[str] = (CART_KEY_PREFIX, SHIPPING_KEY_PREFIX),
    ) -> None:
        self._redis_url = redis_url
        self._evictable_prefixes = tuple(evictable_prefixes)
        self._protected: set[str] = set()
        if client is None:
            client = self._init_client()
        self._client = self._probe(client)

    def _init_client(self):
        if not self._redis_url:
            logger.warning("Storage URL is not set; values will not be persisted")
            return None
        try:
            return redis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        except (RedisError, ValueError) as exc:
            logger.warning("Storage init failed, values will not be persisted: %s", exc)
            return None

    @staticmethod
    def _probe(client):
        if client is None:
            return None
        try:
            client.set(STORAGE_PROBE_KEY, "test")
            client.delete(STORAGE_PROBE_KEY)
        except RedisError as exc:
            logger.warning("Storage is not available, values will not be persisted: %s", exc)
            return None
        return client

    def _switch_to_degraded(self, reason: Exception | str) -> None:
        logger.warning("Storage connection lost, switching to non-persistent mode: %s", reason)
        self._client = None

    def protect(self, *keys: str) -> None:
        """Mark keys that quota cleanup must never evict, whoever triggers it."""
        self._protected.update(keys)

    @property
    def available(self) -> bool:
        return self._client is not None

    def read(self, key: str, default: T) -> StorageResult[T]:
        if self._client is None:
            return StorageResult(default, StorageErrorKind.UNAVAILABLE)

        try:
            raw = self._client.get(key)
        except _CONNECTION_ERRORS as exc:
            self._switch_to_degraded(exc)
            return StorageResult(default, StorageErrorKind.UNAVAILABLE)
        except RedisError as exc:
            logger.error("Failed to read %s: %s", key, exc)
            return StorageResult(default, StorageErrorKind.UNAVAILABLE)

        if not raw:
            return StorageResult(default)

        try:
            return StorageResult(json.loads(raw))
        except ValueError as exc:
            logger.error("Discarding corrupted value under %s: %s", key, exc)
            self.delete(key)
            return StorageResult(default, StorageErrorKind.CORRUPTED)

    def get(self, key: str, default: T) -> T:
        return self.read(key, default).value

    def write(self, key: str, value: Any, *, keep: Iterable[str] = ()) -> StorageResult[bool]:
        """Serialize ``value`` under ``key``.

        A full store gets one cleanup pass that evicts cart and shipping keys of
        other sessions (everything matching the evictable prefixes except
        ``key`` and ``keep``), followed by exactly one retry.
        """
        if self._client is None:
            return StorageResult(False, StorageErrorKind.UNAVAILABLE)

        serialized = json.dumps(value, ensure_ascii=False, default=str)
        try:
            self._client.set(key, serialized)
            return StorageResult(True)
        except ResponseError as exc:
            if not is_quota_error(exc):
                logger.error("Failed to save %s: %s", key, exc)
                return StorageResult(False, StorageErrorKind.UNAVAILABLE)
        except _CONNECTION_ERRORS as exc:
            self._switch_to_degraded(exc)
            return StorageResult(False, StorageErrorKind.UNAVAILABLE)
        except RedisError as exc:
            logger.error("Failed to save %s: %s", key, exc)
            return StorageResult(False, StorageErrorKind.UNAVAILABLE)

        logger.warning("Storage quota exceeded while saving %s; evicting old sessions", key)
        self.evict_other_sessions(keep=(key, *keep))
        try:
            self._client.set(key, serialized)
            return StorageResult(True)
        except RedisError as exc:
            logger.error("Quota still exceeded after cleanup, %s not saved: %s", key, exc)
            return StorageResult(False, StorageErrorKind.QUOTA_EXCEEDED)

    def set(self, key: str, value: Any, *, keep: Iterable[str] = ()) -> bool:
        return self.write(key, value, keep=keep).ok

    def evict_other_sessions(self, keep: Iterable[str] = ()) -> int:
        """Delete evictable keys that are not protected or kept; returns how many went."""
        if self._client is None:
            return 0

        protected = self._protected | set(keep)
        removed = 0
        try:
            for prefix in self._evictable_prefixes:
                stale = [k for k in self._client.scan_iter(match=f"{prefix}*") if k not in protected]
                for stale_key in stale:
                    removed += int(self._client.delete(stale_key) or 0)
        except RedisError as exc:
            logger.error("Failed to clean up old sessions: %s", exc)
        if removed:
            logger.info("Evicted %s key(s) belonging to other sessions", removed)
        return removed

    def get_raw(self, key: str) -> str | None:
        if self._client is None:
            return None
        try:
            return self._client.get(key)
        except _CONNECTION_ERRORS as exc:
            self._switch_to_degraded(exc)
        except RedisError as exc:
            logger.error("Failed to read %s: %s", key, exc)
        return None

    def exists(self, key: str) -> bool:
        return self.get_raw(key) is not None

    def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        try:
            self._client.delete(key)
            return True
        except _CONNECTION_ERRORS as exc:
            self._switch_to_degraded(exc)
        except RedisError as exc:
            logger.error("Failed to delete %s: %s", key, exc)
        return False
