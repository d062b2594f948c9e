"""后端数据 API 客户端。"""

from src.core.infrastructure.data_api.client import DataApiClient, DataApiError
from src.core.infrastructure.data_api.query import (
    Aggregation,
    Filter,
    SortDirection,
    SortSpec,
    all_of,
    any_of,
    eq,
    icontains,
)

__all__ = [
    "Aggregation",
    "DataApiClient",
    "DataApiError",
    "Filter",
    "SortDirection",
    "SortSpec",
    "all_of",
    "any_of",
    "eq",
    "icontains",
]
