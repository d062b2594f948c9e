"""Storefront 组装入口。

根据配置创建各组件并注入依赖：
- 远程缓存：REDIS_URL 优先，其次 Upstash REST，均未配置时只使用本地缓存
- 订单仓储：后端未配置时使用进程内仓储
- 支付网关：未配置时编排器走模拟支付
"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.core.config import Settings
from src.core.infrastructure.cache import (
    CacheClient,
    CacheKeys,
    RedisCacheBackend,
    RemoteCacheBackend,
    UpstashRestBackend,
)
from src.core.infrastructure.data_api import DataApiClient
from src.modules.catalog.application.admin import AdminService
from src.modules.catalog.application.game_service import GameService
from src.modules.catalog.application.loader import CatalogCacheTtl, CatalogLoader
from src.modules.catalog.infrastructure.mappers import BannerMapper, ProductMapper
from src.modules.catalog.infrastructure.repositories import (
    XataBannerRepository,
    XataProductRepository,
)
from src.modules.orders.application.orchestrator import PaymentOrchestrator
from src.modules.orders.application.tracking import OrderTrackingService
from src.modules.orders.domain.entities import PaymentToken
from src.modules.orders.domain.ports import OrderRepository
from src.modules.orders.infrastructure.midtrans import (
    MidtransGateway,
    StatusPollingHostedFlow,
)
from src.modules.orders.infrastructure.repositories import (
    InMemoryOrderRepository,
    OrderMapper,
    XataOrderRepository,
)


def build_cache_backend(settings: Settings) -> RemoteCacheBackend | None:
    if settings.REDIS_URL:
        return RedisCacheBackend(settings.REDIS_URL)
    if settings.upstash_configured:
        return UpstashRestBackend(
            settings.UPSTASH_URL,
            settings.UPSTASH_TOKEN,
            timeout=settings.HTTP_TIMEOUT_SEC,
        )
    return None


def build_order_repository(settings: Settings, data_api: DataApiClient) -> OrderRepository:
    if data_api.is_configured:
        return XataOrderRepository(data_api, OrderMapper(), settings.TRANSACTIONS_TABLE)
    logger.info("Data API not configured, orders are kept in memory")
    return InMemoryOrderRepository()


@dataclass
class Storefront:
    """已组装的 storefront 组件。"""

    settings: Settings
    cache: CacheClient
    data_api: DataApiClient
    gateway: MidtransGateway
    loader: CatalogLoader
    games: GameService
    admin: AdminService
    orchestrator: PaymentOrchestrator
    tracking: OrderTrackingService

    async def health(self) -> dict[str, Any]:
        """各外部依赖的健康状态。"""
        data_api = await self.data_api.health_check(self.settings.PRODUCTS_TABLE)
        return {
            "cache": self.cache.health_check().to_dict(),
            "data_api": data_api.to_dict(),
            "payment_gateway": self.gateway.health_check().to_dict(),
        }


@asynccontextmanager
async def build_storefront(
    settings: Settings,
    *,
    publish_payment_page: Callable[[PaymentToken], Any] | None = None,
) -> AsyncIterator[Storefront]:
    """创建 storefront，退出时等待后台缓存回写并关闭连接。"""
    cache = CacheClient(
        build_cache_backend(settings),
        schema_version=settings.CACHE_SCHEMA_VERSION,
    )
    data_api = DataApiClient(
        settings.XATA_DB_URL,
        settings.XATA_API_KEY,
        configured=settings.data_api_configured,
        timeout=settings.HTTP_TIMEOUT_SEC,
    )
    gateway = MidtransGateway(
        settings.MIDTRANS_SERVER_KEY,
        settings.midtrans_api_url,
        configured=settings.payment_gateway_configured,
        production=settings.MIDTRANS_IS_PRODUCTION,
        timeout=settings.HTTP_TIMEOUT_SEC,
    )

    products = XataProductRepository(data_api, ProductMapper(), settings.PRODUCTS_TABLE)
    banners = XataBannerRepository(data_api, BannerMapper(), settings.BANNERS_TABLE)
    orders = build_order_repository(settings, data_api)
    keys = CacheKeys(settings.CACHE_KEY_PREFIX, settings.CACHE_SCHEMA_VERSION)

    loader = CatalogLoader(
        cache,
        products,
        banners,
        keys,
        ttl=CatalogCacheTtl(
            products=settings.CACHE_TTL_PRODUCTS,
            banners=settings.CACHE_TTL_BANNERS,
            categories=settings.CACHE_TTL_CATEGORIES,
            popular_products=settings.CACHE_TTL_POPULAR_PRODUCTS,
        ),
        freshness_sec=settings.CATALOG_FRESHNESS_SEC,
        timeout_sec=settings.CATALOG_LOAD_TIMEOUT_SEC,
    )
    hosted_flow = StatusPollingHostedFlow(
        gateway,
        poll_interval_sec=settings.PAYMENT_POLL_INTERVAL_SEC,
        window_sec=settings.PAYMENT_POLL_WINDOW_SEC,
        publish=publish_payment_page,
    )

    storefront = Storefront(
        settings=settings,
        cache=cache,
        data_api=data_api,
        gateway=gateway,
        loader=loader,
        games=GameService(
            products,
            cache=cache,
            keys=keys,
            variants_ttl=settings.CACHE_TTL_GAME_VARIANTS,
        ),
        admin=AdminService(
            products,
            data_api,
            products_table=settings.PRODUCTS_TABLE,
            users_table=settings.USERS_TABLE,
            transactions_table=settings.TRANSACTIONS_TABLE,
        ),
        orchestrator=PaymentOrchestrator(
            orders,
            gateway,
            hosted_flow,
            mock_delay_sec=settings.PAYMENT_MOCK_DELAY_SEC,
            admin_fee_label=settings.PAYMENT_ADMIN_FEE_LABEL,
        ),
        tracking=OrderTrackingService(orders, gateway),
    )

    await cache.start()
    try:
        yield storefront
    finally:
        await loader.drain()
        await cache.close()
        await data_api.close()
        await gateway.close()
