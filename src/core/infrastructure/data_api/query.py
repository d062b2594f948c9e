"""数据 API 查询构造器。

对应后端查询接口的 filter / sort / aggregate 语法：
- 等值：{"status": "active"}
- 不区分大小写包含：{"name": {"$iContains": "legends"}}
- 任一匹配：{"$any": [...]}
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

Filter = dict[str, Any]


def eq(field: str, value: Any) -> Filter:
    return {field: value}


def icontains(field: str, text: str) -> Filter:
    return {field: {"$iContains": text}}


def any_of(*filters: Filter) -> Filter:
    return {"$any": list(filters)}


def all_of(*filters: Filter) -> Filter:
    """合并多个条件（AND）。同名字段以后者为准。"""
    merged: Filter = {}
    for item in filters:
        merged.update(item)
    return merged


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    """排序字段。"""

    field: str
    direction: SortDirection = SortDirection.ASC

    def to_payload(self) -> dict[str, str]:
        return {self.field: self.direction.value}


class Aggregation:
    """聚合表达式构造器。"""

    @staticmethod
    def count(filter: Filter | None = None) -> dict[str, Any]:
        agg: dict[str, Any] = {"count": "*"}
        if filter:
            agg["filter"] = filter
        return agg

    @staticmethod
    def avg(field: str, filter: Filter | None = None) -> dict[str, Any]:
        agg: dict[str, Any] = {"avg": field}
        if filter:
            agg["filter"] = filter
        return agg

    @staticmethod
    def sum(field: str, filter: Filter | None = None) -> dict[str, Any]:
        agg: dict[str, Any] = {"sum": field}
        if filter:
            agg["filter"] = filter
        return agg
