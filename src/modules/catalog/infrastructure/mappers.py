"""Catalog record-entity mappers.

后端记录字段以 camelCase 为主（imageUrl / isPopular），早期数据使用 snake_case，
读取时两种写法都接受；写入统一使用 camelCase。
"""

import json
from typing import Any

from loguru import logger

from src.modules.catalog.domain.entities import Banner, Product, parse_variants
from src.modules.catalog.domain.slugs import slugify


def _pick(record: dict[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        value = record.get(name)
        if value is not None:
            return value
    return default


def parse_json_list(raw: Any, field: str) -> tuple[str, ...]:
    """解析 JSON 数组字段（tags/platforms/instructions），格式错误时返回空。"""
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Unparseable {field} JSON, using empty list: {e}")
            return ()
    if not isinstance(raw, list):
        logger.warning(f"Field {field} is not a JSON array, using empty list")
        return ()
    return tuple(str(item) for item in raw)


class ProductMapper:
    """Product record-entity mapper."""

    def to_domain(self, record: dict[str, Any]) -> Product:
        """记录转实体。

        Raises:
            VariantShapeError: variants 结构不合法
            pydantic.ValidationError: 其他字段不合法（如未知分类）
        """
        name = _pick(record, "name", default="")
        return Product(
            id=str(_pick(record, "id", "xata_id", default="")),
            name=name,
            slug=_pick(record, "slug", default="") or slugify(name),
            image_url=_pick(record, "imageUrl", "image_url", default=""),
            category=_pick(record, "category", default="Game"),
            is_popular=bool(_pick(record, "isPopular", "is_popular", default=False)),
            variants=parse_variants(record.get("variants")),
            rating=_pick(record, "rating", default=0.0),
            total_reviews=_pick(record, "totalReviews", "total_reviews", default=0),
            status=_pick(record, "status", default="active"),
            description=_pick(record, "description", default=""),
            currency_name=_pick(record, "currencyName", "currency_name", default=""),
            tags=parse_json_list(record.get("tags"), "tags"),
            platforms=parse_json_list(record.get("platforms"), "platforms"),
            instructions=parse_json_list(record.get("instructions"), "instructions"),
        )

    def to_record(self, product: Product) -> dict[str, Any]:
        """实体转记录（JSON 字段以字符串形式存储）。"""
        return {
            "id": product.id,
            "name": product.name,
            "slug": product.slug,
            "imageUrl": product.image_url,
            "category": product.category.value,
            "isPopular": product.is_popular,
            "variants": json.dumps(self.variants_to_raw(product), ensure_ascii=False),
            "rating": product.rating,
            "totalReviews": product.total_reviews,
            "status": product.status.value,
            "description": product.description,
            "currencyName": product.currency_name,
            "tags": json.dumps(list(product.tags), ensure_ascii=False),
            "platforms": json.dumps(list(product.platforms), ensure_ascii=False),
            "instructions": json.dumps(list(product.instructions), ensure_ascii=False),
        }

    @staticmethod
    def variants_to_raw(product: Product) -> list[dict[str, Any]]:
        """还原为后端存储的 variants 结构。"""
        if product.has_methods:
            return [
                {
                    "method": group.method_id,
                    "name": group.display_name,
                    "description": group.description,
                    "packages": [
                        package.model_dump(exclude_none=True) for package in group.packages
                    ],
                }
                for group in product.variants.methods
            ]
        return [
            variant.model_dump(exclude_none=True) for variant in product.flat_variants()
        ]


class BannerMapper:
    """Banner record-entity mapper."""

    def to_domain(self, record: dict[str, Any]) -> Banner:
        return Banner(
            id=str(_pick(record, "id", "xata_id", default="")),
            image_url=_pick(record, "imageUrl", "image_url", default=""),
            is_active=bool(_pick(record, "isActive", "is_active", default=True)),
            title=_pick(record, "title"),
            link_url=_pick(record, "linkUrl", "link_url"),
        )
