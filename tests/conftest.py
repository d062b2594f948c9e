"""
pytest 配置和共享 fixtures。

测试分层：
- unit/: 单元测试（不依赖外部服务，HTTP 适配器使用 httpx.MockTransport）

使用方法：
    # 运行所有测试
    pytest

    # 只运行单元测试
    pytest tests/unit/
"""

from collections.abc import Sequence
from typing import Any

import pytest

from src.core.config import Settings
from src.core.infrastructure.cache import CacheBackendError, RemoteCacheBackend

# ============================================
# 配置 Fixtures
# ============================================


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def test_settings() -> Settings:
    """测试环境配置（所有外部服务均未配置）。"""
    return Settings(
        _env_file=None,
        ENVIRONMENT="local",
        XATA_API_KEY="",
        UPSTASH_TOKEN="",
        REDIS_URL=None,
        MIDTRANS_SERVER_KEY="",
        PAYMENT_MOCK_DELAY_SEC=0.0,
        CATALOG_LOAD_TIMEOUT_SEC=1.0,
    )


# ============================================
# 时间控制 Fixtures
# ============================================


class FakeClock:
    """可手动推进的时间源（epoch 秒）。"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================
# 缓存 Fixtures
# ============================================


class InMemoryBackend(RemoteCacheBackend):
    """内存版远程缓存（测试替身），不自行过期，过期由 CacheClient 判定。"""

    name = "memory"

    def __init__(self, *, reachable: bool = True, fail_batch: bool = False):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.reachable = reachable
        self.fail_batch = fail_batch
        self.calls: list[str] = []

    async def ping(self) -> bool:
        self.calls.append("ping")
        return self.reachable

    async def get(self, key: str) -> str | None:
        self.calls.append(f"get:{key}")
        return self.store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.calls.append(f"set:{key}")
        self.store[key] = value
        self.ttls[key] = ttl_seconds

    async def delete(self, key: str) -> None:
        self.calls.append(f"delete:{key}")
        self.store.pop(key, None)

    async def mget(self, keys: Sequence[str]) -> list[str | None]:
        self.calls.append("mget")
        if self.fail_batch:
            raise CacheBackendError("mget unavailable")
        return [self.store.get(key) for key in keys]

    async def mset(self, items: Sequence[tuple[str, str, int]]) -> None:
        self.calls.append("mset")
        if self.fail_batch:
            raise CacheBackendError("mset unavailable")
        for key, value, ttl in items:
            self.store[key] = value
            self.ttls[key] = ttl

    async def close(self) -> None:
        self.calls.append("close")


@pytest.fixture
def memory_backend() -> InMemoryBackend:
    return InMemoryBackend()


# ============================================
# 领域对象 Fixtures
# ============================================


@pytest.fixture
def sample_product_record() -> dict[str, Any]:
    """示例商品记录（后端 camelCase 格式）。"""
    return {
        "id": "rec_ml",
        "name": "Mobile Legends",
        "slug": "mobile-legends",
        "imageUrl": "https://example.com/ml.jpg",
        "category": "Game",
        "isPopular": True,
        "variants": '[{"name": "86 Diamonds", "price": 20000}, '
        '{"name": "172 Diamonds", "price": 40000}]',
        "rating": 4.8,
        "totalReviews": 1200,
        "status": "active",
        "description": "MOBA 5v5 terpopuler di Indonesia",
        "currencyName": "Diamonds",
        "tags": '["moba", "mobile"]',
        "platforms": '["Android", "iOS"]',
        "instructions": '["Masukkan User ID", "Pilih nominal"]',
    }


@pytest.fixture
def roblox_record() -> dict[str, Any]:
    """双充值方式商品记录。"""
    return {
        "id": "rec_roblox",
        "name": "Roblox",
        "imageUrl": "https://example.com/roblox.jpg",
        "category": "Game",
        "isPopular": True,
        "variants": [
            {
                "method": "gamepass",
                "name": "Via Gamepass",
                "description": "Top up melalui gamepass",
                "packages": [
                    {"name": "80 Robux", "price": 15000},
                    {"name": "400 Robux", "price": 70000},
                ],
            },
            {
                "method": "login",
                "name": "Via Login",
                "description": "Top up langsung ke akun",
                "packages": [
                    {"name": "80 Robux", "price": 12000},
                    {"name": "400 Robux", "price": 58000},
                ],
            },
        ],
    }


@pytest.fixture
def banner_record() -> dict[str, Any]:
    return {"id": "rec_b1", "imageUrl": "https://example.com/b1.jpg", "isActive": True}
