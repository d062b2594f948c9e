"""Tests for the data API client and query builders."""

import json

import httpx
import pytest

from src.core.infrastructure.data_api import (
    Aggregation,
    DataApiClient,
    DataApiError,
    SortDirection,
    SortSpec,
    all_of,
    any_of,
    eq,
    icontains,
)
from src.core.infrastructure.health import HealthStatus

pytestmark = pytest.mark.anyio


def make_client(handler, *, configured: bool = True) -> DataApiClient:
    return DataApiClient(
        "https://ws.example.com/db/zhivlux",
        "xau_key",
        configured=configured,
        transport=httpx.MockTransport(handler),
    )


# ============================================
# 查询构造
# ============================================


def test_filter_builders() -> None:
    search = any_of(icontains("name", "ml"), icontains("tags", "ml"))
    combined = all_of(eq("status", "active"), eq("isPopular", True), search)

    assert combined == {
        "status": "active",
        "isPopular": True,
        "$any": [{"name": {"$iContains": "ml"}}, {"tags": {"$iContains": "ml"}}],
    }


def test_sort_and_aggregation_payloads() -> None:
    assert SortSpec("rating", SortDirection.DESC).to_payload() == {"rating": "desc"}
    assert SortSpec("name").to_payload() == {"name": "asc"}
    assert Aggregation.count() == {"count": "*"}
    assert Aggregation.sum("amount", eq("status", "Success")) == {
        "sum": "amount",
        "filter": {"status": "Success"},
    }


# ============================================
# 请求
# ============================================


async def test_query_posts_body_and_returns_records() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"records": [{"id": "a"}, "junk", {"id": "b"}]})

    client = make_client(handler)
    records = await client.query(
        "products",
        filter=eq("status", "active"),
        sort=[SortSpec("isPopular", SortDirection.DESC)],
        page_size=100,
        columns=["id", "name"],
    )

    assert records == [{"id": "a"}, {"id": "b"}]
    assert seen["path"] == "/db/zhivlux/tables/products/query"
    assert seen["auth"] == "Bearer xau_key"
    assert seen["body"] == {
        "filter": {"status": "active"},
        "sort": [{"isPopular": "desc"}],
        "page": {"size": 100},
        "columns": ["id", "name"],
    }
    await client.close()


async def test_query_without_records_returns_empty_list() -> None:
    client = make_client(lambda request: httpx.Response(200, json={"meta": {}}))
    assert await client.query("products") == []


async def test_error_response_raises_with_status_code() -> None:
    client = make_client(
        lambda request: httpx.Response(400, json={"message": "invalid filter"})
    )

    with pytest.raises(DataApiError, match="invalid filter") as exc_info:
        await client.query("products")
    assert exc_info.value.status_code == 400


async def test_transport_error_raises_without_status_code() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = make_client(handler)
    with pytest.raises(DataApiError) as exc_info:
        await client.create("transactions", {"trxId": "x"})
    assert exc_info.value.status_code is None


async def test_aggregate_returns_aggs() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/tables/products/aggregate")
        assert json.loads(request.content) == {"aggs": {"total": {"count": "*"}}}
        return httpx.Response(200, json={"aggs": {"total": 7}})

    client = make_client(handler)
    assert await client.aggregate("products", {"total": Aggregation.count()}) == {"total": 7}


async def test_update_and_delete_paths() -> None:
    calls: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={"id": "rec_1", "isPopular": False})

    client = make_client(handler)
    assert await client.update("products", "rec_1", {"isPopular": False}) == {
        "id": "rec_1",
        "isPopular": False,
    }
    assert await client.delete("products", "rec_1") is None
    assert calls == [
        ("PATCH", "/db/zhivlux/tables/products/data/rec_1"),
        ("DELETE", "/db/zhivlux/tables/products/data/rec_1"),
    ]


# ============================================
# 健康检查
# ============================================


async def test_health_check_skipped_when_not_configured() -> None:
    client = make_client(lambda request: httpx.Response(500), configured=False)
    result = await client.health_check("products")
    assert result.status == HealthStatus.SKIPPED


async def test_health_check_reports_error() -> None:
    client = make_client(lambda request: httpx.Response(503))
    result = await client.health_check("products")
    assert result.status == HealthStatus.ERROR
    assert result.error is not None
