"""Application configuration."""

from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 占位值：与前端 .env.example 中的默认值保持一致，出现即视为"未配置"
XATA_API_KEY_PLACEHOLDER = "your_xata_api_key_here"
XATA_DB_URL_PLACEHOLDER = "https://your-workspace-your-database.xata.sh/db/your-database"
UPSTASH_URL_PLACEHOLDER = "https://your-redis-url.upstash.io"
UPSTASH_TOKEN_PLACEHOLDER = "your-upstash-token"
MIDTRANS_SERVER_KEY_PLACEHOLDER = "your-server-key"
MIDTRANS_CLIENT_KEY_PLACEHOLDER = "your-client-key"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "ZhivLux"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    HTTP_TIMEOUT_SEC: float = 10.0

    # Xata（后端数据 API）
    XATA_API_KEY: str = XATA_API_KEY_PLACEHOLDER
    XATA_DB_URL: str = XATA_DB_URL_PLACEHOLDER
    PRODUCTS_TABLE: str = "products"
    BANNERS_TABLE: str = "banners"
    TRANSACTIONS_TABLE: str = "transactions"
    USERS_TABLE: str = "users"

    @computed_field
    @property
    def data_api_configured(self) -> bool:
        return bool(
            self.XATA_API_KEY
            and self.XATA_DB_URL
            and self.XATA_API_KEY != XATA_API_KEY_PLACEHOLDER
            and "your-workspace" not in self.XATA_DB_URL
        )

    # Upstash REST / Redis（远程缓存）
    UPSTASH_URL: str = UPSTASH_URL_PLACEHOLDER
    UPSTASH_TOKEN: str = UPSTASH_TOKEN_PLACEHOLDER
    REDIS_URL: str | None = None  # 配置后优先使用原生 Redis 连接

    @computed_field
    @property
    def upstash_configured(self) -> bool:
        return bool(
            self.UPSTASH_URL
            and self.UPSTASH_TOKEN
            and self.UPSTASH_URL != UPSTASH_URL_PLACEHOLDER
            and self.UPSTASH_TOKEN != UPSTASH_TOKEN_PLACEHOLDER
        )

    @computed_field
    @property
    def cache_configured(self) -> bool:
        return bool(self.REDIS_URL) or self.upstash_configured

    # Cache
    CACHE_SCHEMA_VERSION: str = "v2"
    CACHE_KEY_PREFIX: str = "zhivlux"
    CACHE_TTL_PRODUCTS: int = 600  # 10 minutes
    CACHE_TTL_BANNERS: int = 300  # 5 minutes
    CACHE_TTL_CATEGORIES: int = 1800  # 30 minutes
    CACHE_TTL_POPULAR_PRODUCTS: int = 600  # 10 minutes
    CACHE_TTL_GAME_VARIANTS: int = 1800  # 30 minutes

    # Catalog loader
    CATALOG_FRESHNESS_SEC: int = 300  # 缓存时间戳 5 分钟内视为新鲜
    CATALOG_LOAD_TIMEOUT_SEC: float = 10.0  # 看门狗超时

    # Midtrans（支付网关）
    MIDTRANS_SERVER_KEY: str = MIDTRANS_SERVER_KEY_PLACEHOLDER
    MIDTRANS_CLIENT_KEY: str = MIDTRANS_CLIENT_KEY_PLACEHOLDER
    MIDTRANS_IS_PRODUCTION: bool = False

    @computed_field
    @property
    def payment_gateway_configured(self) -> bool:
        return bool(
            self.MIDTRANS_SERVER_KEY
            and self.MIDTRANS_CLIENT_KEY
            and self.MIDTRANS_SERVER_KEY != MIDTRANS_SERVER_KEY_PLACEHOLDER
            and self.MIDTRANS_CLIENT_KEY != MIDTRANS_CLIENT_KEY_PLACEHOLDER
        )

    @computed_field
    @property
    def midtrans_api_url(self) -> str:
        if self.MIDTRANS_IS_PRODUCTION:
            return "https://api.midtrans.com/v2"
        return "https://api.sandbox.midtrans.com/v2"

    @computed_field
    @property
    def midtrans_snap_url(self) -> str:
        if self.MIDTRANS_IS_PRODUCTION:
            return "https://app.midtrans.com/snap/snap.js"
        return "https://app.sandbox.midtrans.com/snap/snap.js"

    # Payment
    PAYMENT_MOCK_DELAY_SEC: float = 2.0  # 演示模式下模拟支付耗时
    PAYMENT_POLL_INTERVAL_SEC: float = 5.0
    PAYMENT_POLL_WINDOW_SEC: float = 900.0  # 15 分钟未完成视为用户关闭支付页
    PAYMENT_ADMIN_FEE_LABEL: str = "Biaya Admin"
    PAYMENT_DEFAULT_EMAIL: str = "user@example.com"
    PAYMENT_DEFAULT_PHONE: str = "08123456789"
