"""缓存条目定义。"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CacheEntry(BaseModel):
    """带 TTL 与 schema 版本的缓存条目。

    条目有效当且仅当 ``now - stored_at < ttl_seconds``，恰好到达边界即视为过期。
    """

    model_config = ConfigDict(frozen=True)

    data: Any = Field(..., description="缓存数据（需可 JSON 序列化）")
    stored_at: float = Field(..., description="写入时间（epoch 秒）")
    ttl_seconds: int = Field(..., ge=0, description="生存时间（秒）")
    schema_version: str = Field(..., description="数据格式版本")

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_valid(self, now: float) -> bool:
        return self.age(now) < self.ttl_seconds

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        return cls.model_validate_json(raw)
