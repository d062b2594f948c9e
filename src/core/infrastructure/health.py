"""统一的健康检查类型定义。

所有基础设施组件的健康检查都使用这些类型，确保类型安全和一致性。
"""

from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """健康检查状态枚举。"""

    OK = "ok"
    ERROR = "error"
    SKIPPED = "skipped"
    DEGRADED = "degraded"


class CacheHealthResult(BaseModel):
    """缓存健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    backend: str | None = Field(None, description="远程缓存类型（upstash/redis）")
    remote_available: bool = Field(..., description="远程缓存是否可用")
    local_entries: int = Field(0, description="本地兜底缓存条目数")
    error: str | None = Field(None, description="错误信息")

    def to_dict(self) -> dict[str, str | bool | int | None]:
        """转换为字典（用于 CLI 输出）。"""
        return self.model_dump(mode="json", exclude_none=False)


class DataApiHealthResult(BaseModel):
    """后端数据 API 健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    configured: bool = Field(..., description="是否已配置")
    error: str | None = Field(None, description="错误信息")

    def to_dict(self) -> dict[str, str | bool | None]:
        """转换为字典（用于 CLI 输出）。"""
        return self.model_dump(mode="json", exclude_none=False)


class PaymentGatewayHealthResult(BaseModel):
    """支付网关健康检查结果。"""

    status: HealthStatus = Field(..., description="健康状态")
    configured: bool = Field(..., description="是否已配置（否则走演示模式）")
    production: bool = Field(False, description="是否生产环境")

    def to_dict(self) -> dict[str, str | bool]:
        """转换为字典（用于 CLI 输出）。"""
        return self.model_dump(mode="json")
