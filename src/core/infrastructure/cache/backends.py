"""远程缓存后端。

提供两种远程缓存实现，统一通过 RemoteCacheBackend 端口访问：
- UpstashRestBackend: Upstash 风格的 HTTP REST 接口（Bearer Token 鉴权）
- RedisCacheBackend: 原生 Redis 连接（redis.asyncio）

后端只负责字符串读写，条目封装、TTL 校验与本地兜底由 CacheClient 负责。
所有失败统一抛出 CacheBackendError。
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
import redis.asyncio as aioredis
from redis.exceptions import RedisError

if TYPE_CHECKING:
    from redis.asyncio import Redis


class CacheBackendError(RuntimeError):
    """远程缓存不可用（连接失败/超时/非 2xx 响应等）。"""


class RemoteCacheBackend(ABC):
    """远程缓存端口。"""

    name: str = "remote"

    @abstractmethod
    async def ping(self) -> bool:
        """检查远程缓存连通性。"""
        pass

    @abstractmethod
    async def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        pass

    @abstractmethod
    async def mset(self, items: Sequence[tuple[str, str, int]]) -> None:
        """批量写入 (key, value, ttl_seconds)。"""
        pass

    async def close(self) -> None:
        """释放连接。"""
        return None


class UpstashRestBackend(RemoteCacheBackend):
    """Upstash REST 缓存后端。

    每个命令对应一个 URL 路径，响应体格式为 ``{"result": ...}``。
    """

    name = "upstash"

    def __init__(
        self,
        url: str,
        token: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """获取 HTTP 客户端实例（延迟初始化）。"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._url,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _command(
        self,
        method: str,
        *parts: str | int,
        content: str | None = None,
        json: Any = None,
    ) -> Any:
        path = "/" + "/".join(quote(str(part), safe="") for part in parts)
        try:
            response = await self.client.request(method, path, content=content, json=json)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise CacheBackendError(
                f"Upstash {parts[0]} failed: HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CacheBackendError(f"Upstash {parts[0]} failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise CacheBackendError(f"Upstash {parts[0]} returned malformed payload")
        if payload.get("error"):
            raise CacheBackendError(f"Upstash {parts[0]} error: {payload['error']}")
        return payload.get("result")

    async def ping(self) -> bool:
        try:
            await self._command("GET", "ping")
        except CacheBackendError:
            return False
        return True

    async def get(self, key: str) -> str | None:
        result = await self._command("GET", "get", key)
        return result if isinstance(result, str) else None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._command("POST", "setex", key, ttl_seconds, content=value)

    async def delete(self, key: str) -> None:
        await self._command("GET", "del", key)

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        result = await self._command("GET", "mget", *keys)
        if not isinstance(result, list) or len(result) != len(keys):
            raise CacheBackendError("Upstash mget returned unexpected result")
        return [item if isinstance(item, str) else None for item in result]

    async def mset(self, items: Sequence[tuple[str, str, int]]) -> None:
        flat: list[str] = []
        for key, value, _ in items:
            flat.extend([key, value])
        await self._command("POST", "mset", json=flat)

        # MSET 不支持过期时间，逐个补设 TTL
        await asyncio.gather(
            *(self._command("GET", "expire", key, ttl) for key, _, ttl in items)
        )


class RedisCacheBackend(RemoteCacheBackend):
    """原生 Redis 缓存后端。"""

    name = "redis"

    def __init__(self, url: str):
        self._url = url
        self._client: Redis | None = None

    @property
    def client(self) -> Redis:
        """获取 Redis 客户端实例（延迟初始化）。"""
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=10.0,  # 读写超时 10 秒
                socket_connect_timeout=5.0,  # 连接超时 5 秒
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError):
            return False

    async def get(self, key: str) -> str | None:
        try:
            return await self.client.get(key)
        except RedisError as exc:
            raise CacheBackendError(f"Redis get failed: {exc}") from exc

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise CacheBackendError(f"Redis set failed: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as exc:
            raise CacheBackendError(f"Redis delete failed: {exc}") from exc

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        try:
            return list(await self.client.mget(list(keys)))
        except RedisError as exc:
            raise CacheBackendError(f"Redis mget failed: {exc}") from exc

    async def mset(self, items: Sequence[tuple[str, str, int]]) -> None:
        try:
            async with self.client.pipeline(transaction=False) as pipe:
                for key, value, ttl in items:
                    pipe.set(key, value, ex=ttl)
                await pipe.execute()
        except RedisError as exc:
            raise CacheBackendError(f"Redis mset failed: {exc}") from exc
