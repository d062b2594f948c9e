"""Catalog domain exceptions."""

from src.core.domain.exceptions import (
    ConfigurationError,
    EntityNotFoundError,
    ValidationError,
)


class VariantShapeError(ValidationError):
    """商品规格结构不合法（如平铺规格与充值方式分组混用）。"""

    error_code = "INVALID_VARIANTS"


class ProductNotFoundError(EntityNotFoundError):
    """Product not found."""

    def __init__(self, identifier: str | None = None):
        super().__init__("Product", identifier)


class TopUpMethodNotFoundError(EntityNotFoundError):
    """充值方式不存在。"""

    def __init__(self, method_id: str):
        super().__init__("Top-up method", method_id)


class BackendNotConfiguredError(ConfigurationError):
    """后端数据 API 未配置，写操作不可用。"""

    def __init__(self) -> None:
        super().__init__(
            "Xata database is not configured. Please check your environment variables."
        )
