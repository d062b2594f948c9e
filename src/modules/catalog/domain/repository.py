"""Catalog repository interfaces."""

from abc import ABC, abstractmethod
from typing import Any

from src.modules.catalog.domain.entities import Banner, CatalogFilters, Product


class ProductRepository(ABC):
    """商品仓储接口。"""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """后端是否已配置（未配置时调用方使用演示数据）。"""
        pass

    @abstractmethod
    async def list_products(
        self,
        filters: CatalogFilters | None = None,
        page_size: int = 100,
    ) -> list[Product]:
        """按条件列出商品（热门优先，其次评分、名称）。"""
        pass

    @abstractmethod
    async def get_by_slug(self, slug: str) -> Product | None:
        """根据 slug 获取上架商品。"""
        pass

    @abstractmethod
    async def search_by_name(self, *names: str, limit: int = 1) -> list[Product]:
        """按名称模糊匹配（任一名称命中即可）。"""
        pass

    @abstractmethod
    async def create(self, record: dict[str, Any]) -> Product:
        pass

    @abstractmethod
    async def update(self, product_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        """部分更新，返回后端响应记录。"""
        pass

    @abstractmethod
    async def delete(self, product_id: str) -> None:
        pass

    @abstractmethod
    async def export_records(self, page_size: int = 1000) -> list[dict[str, Any]]:
        """导出原始记录（用于备份）。"""
        pass

    @abstractmethod
    async def aggregate_stats(self) -> dict[str, Any]:
        """聚合统计：total_games / popular_games / avg_rating / total_reviews。"""
        pass

    @abstractmethod
    async def category_breakdown(self) -> dict[str, int]:
        """各分类商品数量。"""
        pass


class BannerRepository(ABC):
    """横幅仓储接口。"""

    @abstractmethod
    async def list_active(self) -> list[Banner]:
        pass
