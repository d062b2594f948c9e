"""Catalog domain entities."""

import json
from enum import StrEnum
from typing import Annotated, Any, Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from src.modules.catalog.domain.exceptions import (
    TopUpMethodNotFoundError,
    VariantShapeError,
)


class ProductCategory(StrEnum):
    """商品分类。"""

    GAME = "Game"
    APPS = "Apps"
    VOUCHER = "Voucher"


class ProductStatus(StrEnum):
    """商品上架状态。"""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class Variant(BaseModel):
    """价格规格（如 86 Diamonds / Rp 20.000）。"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="规格名称")
    price: int = Field(..., gt=0, description="价格（IDR）")
    description: str | None = Field(default=None, description="规格说明")


class MethodGroup(BaseModel):
    """充值方式分组（如 Roblox 的 gamepass / login 两条履约路径）。"""

    model_config = ConfigDict(frozen=True)

    method_id: str = Field(..., min_length=1, description="充值方式标识")
    display_name: str = Field(..., description="展示名称")
    description: str = Field(default="", description="充值方式说明")
    packages: tuple[Variant, ...] = Field(default=(), description="该方式下的规格")


class FlatVariants(BaseModel):
    """平铺规格列表。"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["flat"] = "flat"
    variants: tuple[Variant, ...] = ()


class MethodVariants(BaseModel):
    """按充值方式分组的规格列表。"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["methods"] = "methods"
    methods: tuple[MethodGroup, ...] = ()


ProductVariants = Annotated[FlatVariants | MethodVariants, Field(discriminator="kind")]


def parse_variants(raw: Any) -> FlatVariants | MethodVariants:
    """解析后端存储的 variants 字段。

    以元素上是否带 ``method`` 字段作为判别依据：
    - 全部带 method：MethodVariants
    - 全部不带：FlatVariants
    - 混用：抛出 VariantShapeError

    无法解析的 JSON 字符串按空规格处理并记录日志。

    Raises:
        VariantShapeError: 结构不合法
    """
    if raw is None or raw == "":
        return FlatVariants()

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Unparseable variants JSON, using empty variants: {e}")
            return FlatVariants()

    if not isinstance(raw, list):
        raise VariantShapeError("Variants must be a JSON array")
    if not raw:
        return FlatVariants()
    if not all(isinstance(item, dict) for item in raw):
        raise VariantShapeError("Every variant must be a JSON object")

    with_method = [("method" in item) for item in raw]
    try:
        if all(with_method):
            return MethodVariants(
                methods=tuple(
                    MethodGroup(
                        method_id=item["method"],
                        display_name=item.get("name") or item["method"],
                        description=item.get("description") or "",
                        packages=tuple(
                            Variant.model_validate(package)
                            for package in item.get("packages") or []
                        ),
                    )
                    for item in raw
                )
            )
        if any(with_method):
            raise VariantShapeError(
                "Variants mix top-up method groups with flat packages"
            )
        return FlatVariants(
            variants=tuple(Variant.model_validate(item) for item in raw)
        )
    except PydanticValidationError as e:
        raise VariantShapeError(f"Invalid variant definition: {e}") from e


class Product(BaseModel):
    """商品（游戏/应用/点卡）。"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="商品ID")
    name: str = Field(..., min_length=1, description="商品名称")
    slug: str = Field(default="", description="URL 友好名称")
    image_url: str = Field(default="", description="封面图")
    category: ProductCategory = Field(..., description="分类")
    is_popular: bool = Field(default=False, description="是否热门")
    variants: ProductVariants = Field(default_factory=FlatVariants, description="规格")
    rating: float = Field(default=0.0, ge=0, description="评分")
    total_reviews: int = Field(default=0, ge=0, description="评价数")
    status: ProductStatus = Field(default=ProductStatus.ACTIVE, description="状态")
    description: str = Field(default="", description="简介")
    currency_name: str = Field(default="", description="游戏内货币名称")
    tags: tuple[str, ...] = Field(default=(), description="标签")
    platforms: tuple[str, ...] = Field(default=(), description="平台")
    instructions: tuple[str, ...] = Field(default=(), description="充值说明")

    @property
    def has_methods(self) -> bool:
        return isinstance(self.variants, MethodVariants)

    @property
    def method_ids(self) -> list[str]:
        if isinstance(self.variants, MethodVariants):
            return [group.method_id for group in self.variants.methods]
        return []

    def flat_variants(self) -> tuple[Variant, ...]:
        """获取平铺规格。

        Raises:
            VariantShapeError: 商品使用充值方式分组
        """
        if isinstance(self.variants, MethodVariants):
            raise VariantShapeError(
                f"Product '{self.name}' groups its packages by top-up method"
            )
        return self.variants.variants

    def method(self, method_id: str) -> MethodGroup:
        """获取指定充值方式分组。

        Raises:
            VariantShapeError: 商品使用平铺规格
            TopUpMethodNotFoundError: 充值方式不存在
        """
        if not isinstance(self.variants, MethodVariants):
            raise VariantShapeError(f"Product '{self.name}' has no top-up methods")
        for group in self.variants.methods:
            if group.method_id == method_id:
                return group
        raise TopUpMethodNotFoundError(method_id)

    def packages_for(self, method_id: str) -> tuple[Variant, ...]:
        return self.method(method_id).packages

    def all_packages(self) -> tuple[Variant, ...]:
        """所有规格（分组商品按分组顺序展开），用于价格区间等统计。"""
        if isinstance(self.variants, MethodVariants):
            return tuple(
                package for group in self.variants.methods for package in group.packages
            )
        return self.variants.variants


class Banner(BaseModel):
    """首页横幅。"""

    model_config = ConfigDict(frozen=True)

    id: str
    image_url: str
    is_active: bool = True
    title: str | None = None
    link_url: str | None = None


class CatalogFilters(BaseModel):
    """目录筛选条件。"""

    model_config = ConfigDict(frozen=True)

    category: ProductCategory | None = None
    is_popular: bool | None = None
    status: ProductStatus | None = None
    search: str | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.category is None
            and self.is_popular is None
            and self.status is None
            and not self.search
        )

    def matches(self, product: Product) -> bool:
        if self.category is not None and product.category != self.category:
            return False
        if self.is_popular is not None and product.is_popular != self.is_popular:
            return False
        if self.status is not None and product.status != self.status:
            return False
        if self.search:
            needle = self.search.strip().lower()
            haystacks = [product.name, product.description, *product.tags]
            if not any(needle in text.lower() for text in haystacks):
                return False
        return True


class CatalogSnapshot(BaseModel):
    """一次加载得到的只读目录快照。"""

    model_config = ConfigDict(frozen=True)

    products: tuple[Product, ...] = ()
    banners: tuple[Banner, ...] = ()
    categories: tuple[str, ...] = ()
    popular_products: tuple[Product, ...] = ()

    @classmethod
    def build(
        cls,
        products: list[Product] | tuple[Product, ...],
        banners: list[Banner] | tuple[Banner, ...],
    ) -> "CatalogSnapshot":
        """由商品与横幅构建快照，分类与热门商品从商品派生。"""
        categories: list[str] = []
        for product in products:
            if product.category.value not in categories:
                categories.append(product.category.value)
        return cls(
            products=tuple(products),
            banners=tuple(banners),
            categories=tuple(categories),
            popular_products=tuple(p for p in products if p.is_popular),
        )

    def filtered(self, filters: CatalogFilters | None) -> "CatalogSnapshot":
        if filters is None or filters.is_empty:
            return self
        products = [p for p in self.products if filters.matches(p)]
        return CatalogSnapshot.build(products, self.banners)

    def find_product(self, product_id: str) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)
