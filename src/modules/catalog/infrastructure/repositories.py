"""Xata-backed catalog repositories."""

from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from src.core.infrastructure.data_api import (
    Aggregation,
    DataApiClient,
    Filter,
    SortDirection,
    SortSpec,
    all_of,
    any_of,
    eq,
    icontains,
)
from src.modules.catalog.domain.entities import (
    Banner,
    CatalogFilters,
    Product,
    ProductStatus,
)
from src.modules.catalog.domain.exceptions import VariantShapeError
from src.modules.catalog.domain.repository import BannerRepository, ProductRepository
from src.modules.catalog.infrastructure.mappers import BannerMapper, ProductMapper

PRODUCT_SORT = (
    SortSpec("isPopular", SortDirection.DESC),
    SortSpec("rating", SortDirection.DESC),
    SortSpec("name", SortDirection.ASC),
)


class XataProductRepository(ProductRepository):
    """基于数据 API 的商品仓储。"""

    def __init__(
        self,
        client: DataApiClient,
        mapper: ProductMapper,
        table: str = "products",
    ):
        self.client = client
        self.mapper = mapper
        self.table = table

    @property
    def is_configured(self) -> bool:
        return self.client.is_configured

    def _to_domain_list(self, records: list[dict[str, Any]]) -> list[Product]:
        products: list[Product] = []
        for record in records:
            try:
                products.append(self.mapper.to_domain(record))
            except (VariantShapeError, PydanticValidationError) as e:
                logger.error(f"Rejecting product record {record.get('id')}: {e}")
        return products

    @staticmethod
    def _build_filter(filters: CatalogFilters | None) -> Filter | None:
        if filters is None or filters.is_empty:
            return None
        parts: list[Filter] = []
        if filters.category is not None:
            parts.append(eq("category", filters.category.value))
        if filters.is_popular is not None:
            parts.append(eq("isPopular", filters.is_popular))
        if filters.status is not None:
            parts.append(eq("status", filters.status.value))
        if filters.search:
            parts.append(
                any_of(
                    icontains("name", filters.search),
                    icontains("description", filters.search),
                    icontains("tags", filters.search),
                )
            )
        return all_of(*parts)

    async def list_products(
        self,
        filters: CatalogFilters | None = None,
        page_size: int = 100,
    ) -> list[Product]:
        records = await self.client.query(
            self.table,
            filter=self._build_filter(filters),
            sort=PRODUCT_SORT,
            page_size=page_size,
        )
        return self._to_domain_list(records)

    async def get_by_slug(self, slug: str) -> Product | None:
        records = await self.client.query(
            self.table,
            filter=all_of(eq("slug", slug), eq("status", ProductStatus.ACTIVE.value)),
            page_size=1,
        )
        products = self._to_domain_list(records)
        return products[0] if products else None

    async def search_by_name(self, *names: str, limit: int = 1) -> list[Product]:
        records = await self.client.query(
            self.table,
            filter=any_of(*(icontains("name", name) for name in names)),
            page_size=limit,
        )
        return self._to_domain_list(records)

    async def create(self, record: dict[str, Any]) -> Product:
        created = await self.client.create(self.table, record)
        return self.mapper.to_domain({**record, **created})

    async def update(self, product_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        return await self.client.update(self.table, product_id, patch)

    async def delete(self, product_id: str) -> None:
        await self.client.delete(self.table, product_id)

    async def export_records(self, page_size: int = 1000) -> list[dict[str, Any]]:
        return await self.client.query(self.table, page_size=page_size)

    async def aggregate_stats(self) -> dict[str, Any]:
        return await self.client.aggregate(
            self.table,
            {
                "total_games": Aggregation.count(),
                "popular_games": Aggregation.count(eq("isPopular", True)),
                "avg_rating": Aggregation.avg("rating"),
                "total_reviews": Aggregation.sum("totalReviews"),
            },
        )

    async def category_breakdown(self) -> dict[str, int]:
        records = await self.client.query(
            self.table, columns=["category"], page_size=1000
        )
        categories: dict[str, int] = {}
        for record in records:
            category = record.get("category")
            if isinstance(category, str):
                categories[category] = categories.get(category, 0) + 1
        return categories


class XataBannerRepository(BannerRepository):
    """基于数据 API 的横幅仓储。"""

    def __init__(
        self,
        client: DataApiClient,
        mapper: BannerMapper,
        table: str = "banners",
    ):
        self.client = client
        self.mapper = mapper
        self.table = table

    async def list_active(self) -> list[Banner]:
        records = await self.client.query(self.table, filter=eq("isActive", True))
        banners: list[Banner] = []
        for record in records:
            try:
                banners.append(self.mapper.to_domain(record))
            except PydanticValidationError as e:
                logger.error(f"Rejecting banner record {record.get('id')}: {e}")
        return banners
