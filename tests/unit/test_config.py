"""Tests for settings, currency formatting and storefront wiring."""

import pytest

from src.core.config import Settings
from src.core.domain.currency import format_currency
from src.core.infrastructure.cache import RedisCacheBackend, UpstashRestBackend
from src.modules.catalog.application.loader import CatalogSource
from src.modules.orders.application.payment_types import payment_method
from src.modules.orders.domain.entities import (
    CheckoutProduct,
    CheckoutRequest,
    Customer,
    OrderStatus,
)
from src.modules.orders.infrastructure.repositories import InMemoryOrderRepository
from src.storefront import build_cache_backend, build_storefront

pytestmark = pytest.mark.anyio


# ============================================
# 配置
# ============================================


class TestSettings:
    def test_placeholders_are_not_configured(self) -> None:
        settings = Settings(_env_file=None, REDIS_URL=None)

        assert settings.data_api_configured is False
        assert settings.upstash_configured is False
        assert settings.cache_configured is False
        assert settings.payment_gateway_configured is False

    def test_real_values_are_configured(self) -> None:
        settings = Settings(
            _env_file=None,
            XATA_API_KEY="xau_live",
            XATA_DB_URL="https://acme-abc123.xata.sh/db/zhivlux",
            UPSTASH_URL="https://eu1-cache.upstash.io",
            UPSTASH_TOKEN="tok",
            MIDTRANS_SERVER_KEY="SB-Mid-server-1",
            MIDTRANS_CLIENT_KEY="SB-Mid-client-1",
        )

        assert settings.data_api_configured is True
        assert settings.upstash_configured is True
        assert settings.payment_gateway_configured is True

    def test_midtrans_urls_follow_environment(self) -> None:
        sandbox = Settings(_env_file=None, MIDTRANS_IS_PRODUCTION=False)
        production = Settings(_env_file=None, MIDTRANS_IS_PRODUCTION=True)

        assert sandbox.midtrans_api_url == "https://api.sandbox.midtrans.com/v2"
        assert production.midtrans_api_url == "https://api.midtrans.com/v2"
        assert production.midtrans_snap_url == "https://app.midtrans.com/snap/snap.js"

    def test_cache_backend_selection(self, test_settings) -> None:
        assert build_cache_backend(test_settings) is None

        upstash = test_settings.model_copy(
            update={"UPSTASH_URL": "https://eu1-cache.upstash.io", "UPSTASH_TOKEN": "tok"}
        )
        assert isinstance(build_cache_backend(upstash), UpstashRestBackend)

        redis = test_settings.model_copy(update={"REDIS_URL": "redis://localhost:6379/0"})
        assert isinstance(build_cache_backend(redis), RedisCacheBackend)


@pytest.mark.parametrize(
    ("amount", "expected"),
    [(20000, "Rp 20.000"), (1500000, "Rp 1.500.000"), (0, "Rp 0"), (-2500, "-Rp 2.500")],
)
def test_format_currency(amount: int, expected: str) -> None:
    assert format_currency(amount) == expected


# ============================================
# 组装（演示模式）
# ============================================


async def test_offline_storefront_demo_flow(test_settings) -> None:
    """未配置任何外部服务时：演示目录 + 模拟支付 + 进程内订单。"""
    async with build_storefront(test_settings) as storefront:
        assert isinstance(storefront.orchestrator.orders, InMemoryOrderRepository)

        result = await storefront.loader.load()
        assert result.source == CatalogSource.DEMO

        product = next(p for p in result.snapshot.products if p.name == "Mobile Legends")
        variant = product.flat_variants()[0]
        state = await storefront.orchestrator.process(
            CheckoutRequest(
                product=CheckoutProduct(name=product.name),
                customer=Customer(user_id="12345678", zone_id="1234"),
                variant=variant,
                payment_method=payment_method("dana", fee=2500),
            )
        )
        assert state.success is True
        assert state.mock is True

        order = await storefront.tracking.track(state.order_id)
        assert order.status == OrderStatus.SUCCESS
        assert order.total_amount == variant.price + 2500

        health = await storefront.health()
        assert health["cache"]["status"] == "degraded"
        assert health["data_api"]["status"] == "skipped"
        assert health["payment_gateway"]["status"] == "skipped"


def test_config_module_has_no_global_instance() -> None:
    """配置只在启动时显式构造并传递，导入模块不会读取 .env。"""
    import src.core.config as config_module

    assert not hasattr(config_module, "settings")
