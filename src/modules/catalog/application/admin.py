"""管理后台辅助功能：商品表单校验、导入导出与统计。"""

import json
from typing import Any
from urllib.parse import urlparse

from loguru import logger
from pydantic import BaseModel

from src.core.domain.exceptions import ValidationError
from src.core.infrastructure.data_api import Aggregation, DataApiClient, DataApiError, eq
from src.core.infrastructure.logging import BusinessEvents
from src.modules.catalog.domain.repository import ProductRepository


class AdminStats(BaseModel):
    """后台统计。"""

    total_products: int = 0
    total_users: int = 0
    total_transactions: int = 0
    total_revenue: int = 0
    popular_products: int = 0


DEMO_ADMIN_STATS = AdminStats(
    total_products=6,
    total_users=150,
    total_transactions=45,
    total_revenue=2500000,
    popular_products=3,
)


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def validate_product_form(data: dict[str, Any]) -> list[str]:
    """校验商品表单，返回错误信息列表（为空表示通过）。

    表单字段：name / imageUrl / category / variants（JSON 字符串）
    """
    errors: list[str] = []

    if not str(data.get("name") or "").strip():
        errors.append("Nama produk wajib diisi")

    image_url = str(data.get("imageUrl") or "").strip()
    if not image_url:
        errors.append("URL gambar wajib diisi")
    elif not is_valid_url(image_url):
        errors.append("URL gambar tidak valid")

    if not str(data.get("category") or "").strip():
        errors.append("Kategori wajib dipilih")

    variants = data.get("variants")
    if isinstance(variants, str):
        variants = variants.strip()
    if not variants:
        errors.append("Variants wajib diisi")
        return errors

    try:
        parsed = json.loads(variants) if isinstance(variants, str) else variants
    except json.JSONDecodeError:
        errors.append("Format JSON variants tidak valid")
        return errors

    if not isinstance(parsed, list):
        errors.append("Variants harus berupa array JSON")
        return errors

    for index, variant in enumerate(parsed, start=1):
        if not isinstance(variant, dict):
            variant = {}
        name = variant.get("name")
        if not name or not isinstance(name, str):
            errors.append(f"Variant {index}: name wajib diisi")
        price = variant.get("price")
        if not price or isinstance(price, bool) or not isinstance(price, int | float):
            errors.append(f"Variant {index}: price harus berupa angka")

    return errors


class AdminService:
    """管理后台服务。"""

    def __init__(
        self,
        products: ProductRepository,
        data_api: DataApiClient,
        *,
        products_table: str = "products",
        users_table: str = "users",
        transactions_table: str = "transactions",
    ):
        self.products = products
        self.data_api = data_api
        self.products_table = products_table
        self.users_table = users_table
        self.transactions_table = transactions_table

    async def get_admin_stats(self) -> AdminStats:
        """获取后台统计。

        后端未配置时返回演示数据；查询失败时返回全零统计。
        """
        if not self.data_api.is_configured:
            return DEMO_ADMIN_STATS

        try:
            products = await self.data_api.aggregate(
                self.products_table,
                {
                    "total": Aggregation.count(),
                    "popular": Aggregation.count(eq("isPopular", True)),
                },
            )
            users = await self.data_api.aggregate(
                self.users_table, {"total": Aggregation.count()}
            )
            transactions = await self.data_api.aggregate(
                self.transactions_table,
                {
                    "total": Aggregation.count(),
                    "revenue": Aggregation.sum("amount", eq("status", "Success")),
                },
            )
        except DataApiError as e:
            logger.error(f"Error fetching admin stats: {e}")
            BusinessEvents.feature_degraded(feature="admin_stats", reason=str(e))
            return AdminStats()

        return AdminStats(
            total_products=products.get("total") or 0,
            total_users=users.get("total") or 0,
            total_transactions=transactions.get("total") or 0,
            total_revenue=int(transactions.get("revenue") or 0),
            popular_products=products.get("popular") or 0,
        )

    async def export_products(self) -> str:
        """导出商品原始记录（JSON），后端未配置时导出空数组。"""
        if not self.products.is_configured:
            return json.dumps([], indent=2)
        records = await self.products.export_records(page_size=1000)
        return json.dumps(records, indent=2, ensure_ascii=False)

    async def import_products(self, json_data: str) -> int:
        """导入商品：先整体校验，再逐个创建。

        Returns:
            导入的商品数量（后端未配置时为 0）

        Raises:
            ValidationError: 数据格式或任一商品校验失败
            DataApiError: 创建失败（已导入的商品不会回滚）
        """
        try:
            products = json.loads(json_data)
        except json.JSONDecodeError as e:
            raise ValidationError("Format JSON tidak valid") from e
        if not isinstance(products, list):
            raise ValidationError("Data harus berupa array")

        if not self.products.is_configured:
            logger.info(f"Mock import of {len(products)} products (data API not configured)")
            return 0

        for product in products:
            errors = validate_product_form(product if isinstance(product, dict) else {})
            if errors:
                raise ValidationError(f"Invalid product data: {', '.join(errors)}")

        for product in products:
            try:
                await self.products.create(product)
            except DataApiError as e:
                raise DataApiError(
                    f"Failed to import product: {product.get('name')}", e.status_code
                ) from e

        logger.info(f"Imported {len(products)} products")
        return len(products)
