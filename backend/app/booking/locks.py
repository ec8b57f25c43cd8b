"""
Сериализация записи журнала бронирований по товару.

Чтение-проверка-запись метаполя не атомарна на стороне Shopify, поэтому
два одновременных подтверждения заказа по одному товару должны идти по
очереди: иначе вторая запись затрёт первую.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator, Protocol

import redis.asyncio as redis
from redis.exceptions import LockError

logger = logging.getLogger(__name__)


class LedgerLockError(RuntimeError):
    """Не удалось захватить блокировку журнала."""


class LedgerLocks(Protocol):
    def lock(self, product_id: str) -> AbstractAsyncContextManager[None]: ...


class InMemoryLedgerLocks:
    """Блокировки asyncio.Lock в пределах одного процесса."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @asynccontextmanager
    async def lock(self, product_id: str) -> AsyncIterator[None]:
        product_lock = self._locks.get(product_id)
        if product_lock is None:
            product_lock = asyncio.Lock()
            self._locks[product_id] = product_lock
        async with product_lock:
            yield


class RedisLedgerLocks:
    """Распределённые блокировки Redis для нескольких воркеров."""

    key_prefix = "booking:lock:"

    def __init__(
        self,
        redis_client: redis.Redis,
        *,
        timeout: float = 30.0,
        blocking_timeout: float = 10.0,
    ) -> None:
        self._redis = redis_client
        self._timeout = timeout
        self._blocking_timeout = blocking_timeout

    @classmethod
    def from_url(cls, url: str, **kwargs: float) -> RedisLedgerLocks:
        return cls(redis.Redis.from_url(url, decode_responses=False), **kwargs)

    async def close(self) -> None:
        await self._redis.aclose()

    @asynccontextmanager
    async def lock(self, product_id: str) -> AsyncIterator[None]:
        product_lock = self._redis.lock(
            f"{self.key_prefix}{product_id}",
            timeout=self._timeout,
            blocking_timeout=self._blocking_timeout,
        )
        try:
            acquired = await product_lock.acquire()
        except redis.RedisError as exc:
            logger.error("Redis lock for product %s failed: %s", product_id, exc)
            raise LedgerLockError(str(exc)) from exc
        if not acquired:
            raise LedgerLockError(f"Ledger for product {product_id} is busy")

        try:
            yield
        finally:
            try:
                await product_lock.release()
            except LockError as exc:
                # блокировка истекла по timeout раньше окончания записи
                logger.warning("Redis lock for product %s was lost: %s", product_id, exc)
            except redis.RedisError as exc:
                # запись уже прошла, блокировку снимет timeout
                logger.warning("Redis lock for product %s was not released: %s", product_id, exc)


__all__ = ["LedgerLocks", "LedgerLockError", "InMemoryLedgerLocks", "RedisLedgerLocks"]
