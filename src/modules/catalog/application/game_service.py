"""商品管理服务。

封装商品表的查询与增删改，写操作要求后端已配置。
"""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from src.core.domain.exceptions import ValidationError
from src.core.infrastructure.cache import CacheClient, CacheKeys
from src.modules.catalog.application.placeholder import demo_snapshot
from src.modules.catalog.domain.entities import (
    CatalogFilters,
    FlatVariants,
    MethodVariants,
    Product,
    ProductCategory,
    ProductStatus,
    parse_variants,
)
from src.modules.catalog.domain.exceptions import (
    BackendNotConfiguredError,
    ProductNotFoundError,
    VariantShapeError,
)
from src.modules.catalog.domain.repository import ProductRepository
from src.modules.catalog.domain.slugs import slug_to_search_name, slugify

JSON_FIELDS = ("variants", "tags", "platforms", "instructions")


class ProductPatch(BaseModel):
    """商品部分更新（JSON 字段为字符串形式）。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = None
    slug: str | None = None
    image_url: str | None = None
    category: ProductCategory | None = None
    is_popular: bool | None = None
    status: ProductStatus | None = None
    description: str | None = None
    currency_name: str | None = None
    rating: float | None = Field(default=None, ge=0)
    total_reviews: int | None = Field(default=None, ge=0)
    variants: str | None = None
    tags: str | None = None
    platforms: str | None = None
    instructions: str | None = None

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class ProductDraft(ProductPatch):
    """新建商品表单。"""

    name: str = Field(..., min_length=1)
    image_url: str = ""
    category: ProductCategory = ProductCategory.GAME
    is_popular: bool = False
    status: ProductStatus = ProductStatus.ACTIVE
    variants: str = "[]"
    tags: str = "[]"
    platforms: str = "[]"
    instructions: str = "[]"

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ProductStats(BaseModel):
    """商品统计。"""

    total_games: int = 0
    popular_games: int = 0
    categories: dict[str, int] = Field(default_factory=dict)
    avg_rating: float = 0.0
    total_reviews: int = 0


def validate_json_fields(record: dict[str, Any]) -> None:
    """校验记录中的 JSON 字段。

    Raises:
        ValidationError: 任一字段不是合法 JSON，或 variants 结构不合法
    """
    try:
        for field in JSON_FIELDS:
            if record.get(field) is not None:
                json.loads(record[field])
    except json.JSONDecodeError as e:
        raise ValidationError("Invalid JSON format in one of the fields") from e
    if record.get("variants") is not None:
        try:
            parse_variants(record["variants"])
        except VariantShapeError as e:
            raise ValidationError(f"Invalid variants: {e.message}") from e


class GameService:
    """商品服务。"""

    def __init__(
        self,
        repository: ProductRepository,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        *,
        cache: CacheClient | None = None,
        keys: CacheKeys | None = None,
        variants_ttl: int = 1800,
    ):
        self.repository = repository
        self._clock = clock
        self.cache = cache
        self.keys = keys or CacheKeys()
        self.variants_ttl = variants_ttl

    def _ensure_configured(self) -> None:
        if not self.repository.is_configured:
            raise BackendNotConfiguredError()

    # ============ 查询 ============

    async def list_products(self, filters: CatalogFilters | None = None) -> list[Product]:
        """列出商品，未指定状态时只返回上架商品。"""
        self._ensure_configured()
        filters = filters or CatalogFilters()
        if filters.status is None:
            filters = filters.model_copy(update={"status": ProductStatus.ACTIVE})
        return await self.repository.list_products(filters, page_size=100)

    async def get_by_slug(self, slug: str) -> Product | None:
        self._ensure_configured()
        return await self.repository.get_by_slug(slug)

    async def get_popular(self, limit: int = 8) -> list[Product]:
        products = await self.list_products(CatalogFilters(is_popular=True))
        return products[:limit]

    async def get_by_category(self, category: ProductCategory) -> list[Product]:
        return await self.list_products(CatalogFilters(category=category))

    async def search(self, query: str) -> list[Product]:
        return await self.list_products(CatalogFilters(search=query))

    async def find_variants(self, slug: str) -> tuple[Product, FlatVariants | MethodVariants]:
        """根据 URL slug 查找商品及其规格。

        后端未配置时在演示目录中按名称模糊匹配；配置了缓存时查询结果按 slug 缓存。

        Raises:
            ValidationError: slug 为空
            ProductNotFoundError: 未找到商品
        """
        if not slug:
            raise ValidationError("Game slug is required")
        search_name = slug_to_search_name(slug)

        if not self.repository.is_configured:
            product = next(
                (
                    p
                    for p in demo_snapshot().products
                    if search_name in p.name.lower() or p.name.lower() in search_name
                ),
                None,
            )
        else:
            product = await self._cached_variants(slug)
            if product is None:
                matches = await self.repository.search_by_name(
                    search_name, slug.replace("-", " "), limit=1
                )
                product = matches[0] if matches else None
                if product is not None and self.cache is not None:
                    await self.cache.set(
                        self.keys.game_variants(slug),
                        product.model_dump(mode="json"),
                        self.variants_ttl,
                    )

        if product is None:
            raise ProductNotFoundError(slug)
        return product, product.variants

    async def _cached_variants(self, slug: str) -> Product | None:
        if self.cache is None:
            return None
        cached = await self.cache.get(self.keys.game_variants(slug))
        if cached is None:
            return None
        try:
            return Product.model_validate(cached)
        except PydanticValidationError as e:
            logger.warning(f"Cached variants for {slug} are unreadable: {e}")
            return None

    # ============ 写操作 ============

    async def create(self, draft: ProductDraft) -> Product:
        """新建商品，slug 缺省时由名称生成。"""
        self._ensure_configured()
        record = draft.to_record()
        if not record.get("slug"):
            record["slug"] = slugify(draft.name)
        validate_json_fields(record)

        now = self._clock().isoformat()
        record["createdAt"] = now
        record["updatedAt"] = now

        product = await self.repository.create(record)
        logger.info(f"Created product {product.id} ({product.slug})")
        return product

    async def update(self, product_id: str, patch: ProductPatch) -> dict[str, Any]:
        self._ensure_configured()
        record = patch.to_record()
        validate_json_fields(record)
        record["updatedAt"] = self._clock().isoformat()
        return await self.repository.update(product_id, record)

    async def delete(self, product_id: str) -> None:
        self._ensure_configured()
        await self.repository.delete(product_id)
        logger.info(f"Deleted product {product_id}")

    async def toggle_popularity(self, product_id: str, is_popular: bool) -> None:
        await self.update(product_id, ProductPatch(is_popular=is_popular))

    async def update_status(self, product_id: str, status: ProductStatus) -> None:
        await self.update(product_id, ProductPatch(status=status))

    # ============ 统计 ============

    async def get_stats(self) -> ProductStats:
        self._ensure_configured()
        aggs = await self.repository.aggregate_stats()
        categories = await self.repository.category_breakdown()
        return ProductStats(
            total_games=aggs.get("total_games") or 0,
            popular_games=aggs.get("popular_games") or 0,
            categories=categories,
            avg_rating=aggs.get("avg_rating") or 0.0,
            total_reviews=aggs.get("total_reviews") or 0,
        )
