"""缓存客户端封装。

提供统一的 KV 缓存访问接口，支持：
- 远程缓存（Upstash REST / Redis）+ 进程内兜底缓存
- 条目级 TTL 与 schema 版本校验
- 批量读写（远程不支持或失败时逐个降级）

远程可用性只在 start() 时探测一次；探测失败后，该实例生命周期内的所有操作都走本地缓存，
不会自动重新探测。
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import Any

from loguru import logger
from pydantic import ValidationError

from src.core.infrastructure.cache.backends import CacheBackendError, RemoteCacheBackend
from src.core.infrastructure.cache.entry import CacheEntry
from src.core.infrastructure.health import CacheHealthResult, HealthStatus
from src.core.infrastructure.logging import BusinessEvents


class CacheClient:
    """带本地兜底的缓存客户端。"""

    def __init__(
        self,
        backend: RemoteCacheBackend | None = None,
        *,
        schema_version: str = "v2",
        clock: Callable[[], float] = time.time,
    ):
        """初始化缓存客户端。

        Args:
            backend: 远程缓存后端，None 表示未配置（只使用本地缓存）
            schema_version: 当前数据格式版本，版本不一致的条目视为未命中
            clock: 时间源（epoch 秒），测试时可替换
        """
        self._backend = backend
        self._schema_version = schema_version
        self._clock = clock
        self._remote_available = False
        self._started = False
        self._local: dict[str, CacheEntry] = {}

    @property
    def remote_available(self) -> bool:
        return self._remote_available

    @property
    def backend_name(self) -> str | None:
        return self._backend.name if self._backend else None

    async def start(self) -> bool:
        """探测远程缓存可用性（每个实例只探测一次）。

        Returns:
            远程缓存是否可用
        """
        if self._started:
            return self._remote_available
        self._started = True

        if self._backend is None:
            logger.warning("Remote cache not configured, using local cache fallback")
            BusinessEvents.cache_degraded(reason="not_configured")
            return False

        self._remote_available = await self._backend.ping()
        if self._remote_available:
            logger.info(f"Remote cache ({self._backend.name}) connected successfully")
        else:
            logger.warning(
                f"Remote cache ({self._backend.name}) ping failed, using local cache fallback"
            )
            BusinessEvents.cache_degraded(reason="ping_failed", backend=self._backend.name)
        return self._remote_available

    async def close(self) -> None:
        if self._backend is not None:
            await self._backend.close()

    def _wrap(self, value: Any, ttl_seconds: int) -> CacheEntry:
        return CacheEntry(
            data=value,
            stored_at=self._clock(),
            ttl_seconds=ttl_seconds,
            schema_version=self._schema_version,
        )

    def _accept(self, entry: CacheEntry) -> bool:
        return entry.schema_version == self._schema_version and entry.is_valid(self._clock())

    def _decode(self, key: str, raw: str) -> CacheEntry | None:
        try:
            return CacheEntry.from_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding malformed cache entry {key}: {e}")
            return None

    # ============ 单键操作 ============

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """写入缓存。

        远程可用时写远程，并始终镜像写入本地缓存。不会向调用方抛出异常。

        Returns:
            写入成功返回 True（远程写入失败时本地仍保留镜像，但返回 False）
        """
        try:
            entry = self._wrap(value, ttl_seconds)
            payload = entry.to_json()
        except (TypeError, ValueError) as e:
            logger.error(f"Cache set error for {key}: {e}")
            return False

        self._local[key] = entry
        self._cleanup_local()
        if not self._remote_available:
            return True
        try:
            await self._backend.set(key, payload, ttl_seconds)
            return True
        except CacheBackendError as e:
            logger.error(f"Cache set error for {key}: {e}")
            return False

    async def get(self, key: str) -> Any | None:
        """读取缓存。

        远程优先，其次本地；过期或版本不符的条目会被清除并视为未命中。
        """
        if self._remote_available:
            try:
                raw = await self._backend.get(key)
            except CacheBackendError as e:
                logger.warning(f"Remote cache get failed for {key}: {e}")
                raw = None

            if raw is not None:
                return await self._from_remote(key, raw)

        return self._from_local(key)

    async def _from_remote(self, key: str, raw: str) -> Any | None:
        entry = self._decode(key, raw)
        if entry is not None and self._accept(entry):
            self._local[key] = entry
            return entry.data
        # 已过期或格式不符，清理后视为未命中
        await self.delete(key)
        return None

    def _from_local(self, key: str) -> Any | None:
        local_entry = self._local.get(key)
        if local_entry is None:
            return None
        if self._accept(local_entry):
            return local_entry.data
        self._local.pop(key, None)
        return None

    async def delete(self, key: str) -> bool:
        """删除缓存（远程 + 本地）。"""
        self._local.pop(key, None)
        if not self._remote_available:
            return True
        try:
            await self._backend.delete(key)
            return True
        except CacheBackendError as e:
            logger.error(f"Cache delete error for {key}: {e}")
            return False

    async def exists(self, key: str) -> bool:
        """检查缓存是否存在且有效。"""
        return await self.get(key) is not None

    # ============ 批量操作 ============

    async def mget(self, keys: Sequence[str]) -> list[Any | None]:
        """批量读取，远程批量失败时逐个读取。

        每个键的处理与 ``get`` 一致：远程无值时读本地，无效条目从两处清除。
        """
        if self._remote_available and len(keys) > 1:
            try:
                raws = await self._backend.mget(keys)
            except CacheBackendError as e:
                logger.warning(f"Remote cache mget failed, falling back to single gets: {e}")
            else:
                results: list[Any | None] = []
                for key, raw in zip(keys, raws, strict=True):
                    if raw is None:
                        results.append(self._from_local(key))
                    else:
                        results.append(await self._from_remote(key, raw))
                return results

        return [await self.get(key) for key in keys]

    async def mset(self, items: Sequence[tuple[str, Any, int]]) -> bool:
        """批量写入 (key, value, ttl_seconds)，远程批量失败时逐个写入。"""
        if self._remote_available and len(items) > 1:
            try:
                entries = [(key, self._wrap(value, ttl), ttl) for key, value, ttl in items]
                await self._backend.mset(
                    [(key, entry.to_json(), ttl) for key, entry, ttl in entries]
                )
            except (CacheBackendError, TypeError, ValueError) as e:
                logger.warning(f"Remote cache mset failed, falling back to single sets: {e}")
            else:
                for key, entry, _ in entries:
                    self._local[key] = entry
                self._cleanup_local()
                return True

        results = [await self.set(key, value, ttl) for key, value, ttl in items]
        return all(results)

    # ============ 维护 ============

    async def clear(self) -> bool:
        """清空本地缓存（远程缓存不提供 FLUSHDB）。"""
        self._local.clear()
        return True

    def stats(self) -> dict[str, Any]:
        return {
            "remote_available": self._remote_available,
            "backend": self.backend_name,
            "local_cache_size": len(self._local),
            "local_cache_keys": list(self._local.keys()),
        }

    def health_check(self) -> CacheHealthResult:
        """缓存健康状态：远程可用为 OK，仅本地兜底为 DEGRADED。"""
        return CacheHealthResult(
            status=HealthStatus.OK if self._remote_available else HealthStatus.DEGRADED,
            backend=self.backend_name,
            remote_available=self._remote_available,
            local_entries=len(self._local),
        )

    def _cleanup_local(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._local.items() if not entry.is_valid(now)]
        for key in expired:
            del self._local[key]
