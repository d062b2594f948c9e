"""后端数据 API 客户端。

封装 Xata 风格的 REST 接口：
- POST   /tables/{table}/query       查询
- POST   /tables/{table}/data        创建
- PATCH  /tables/{table}/data/{id}   部分更新
- DELETE /tables/{table}/data/{id}   删除
- POST   /tables/{table}/aggregate   聚合（count/avg/sum）

所有传输错误与非 2xx 响应统一抛出 DataApiError，由调用方决定降级策略。
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger

from src.core.infrastructure.data_api.query import Filter, SortSpec
from src.core.infrastructure.health import DataApiHealthResult, HealthStatus


class DataApiError(RuntimeError):
    """数据 API 请求失败。"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class DataApiClient:
    """Xata 风格数据 API 客户端。"""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        configured: bool = True,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """初始化数据 API 客户端。

        Args:
            base_url: 数据库 URL（如 https://workspace.xata.sh/db/name）
            api_key: API Key（Bearer）
            configured: 是否已配置（占位值时为 False，调用方据此走演示数据）
            timeout: 请求超时（秒）
            transport: 自定义 httpx transport（测试用）
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._configured = configured
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def client(self) -> httpx.AsyncClient:
        """获取 HTTP 客户端实例（延迟初始化）。"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
    ) -> Any:
        try:
            response = await self.client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise DataApiError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            raise DataApiError(
                f"{method} {path} failed: {self._error_message(response)}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise DataApiError(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            return payload["message"]
        return response.reason_phrase or f"HTTP {response.status_code}"

    # ============ 查询 ============

    async def query(
        self,
        table: str,
        *,
        filter: Filter | None = None,
        sort: Sequence[SortSpec] | None = None,
        page_size: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """查询记录。

        Returns:
            记录列表（原始字典）
        """
        body: dict[str, Any] = {}
        if filter:
            body["filter"] = filter
        if sort:
            body["sort"] = [spec.to_payload() for spec in sort]
        if page_size is not None:
            body["page"] = {"size": page_size}
        if columns:
            body["columns"] = list(columns)

        payload = await self._request("POST", f"/tables/{table}/query", json=body)
        records = payload.get("records") if isinstance(payload, dict) else None
        if not isinstance(records, list):
            return []
        return [record for record in records if isinstance(record, dict)]

    async def aggregate(
        self,
        table: str,
        aggs: dict[str, dict[str, Any]],
    ) -> dict[str, Any]:
        """执行聚合查询，返回 aggs 字典。"""
        payload = await self._request(
            "POST", f"/tables/{table}/aggregate", json={"aggs": aggs}
        )
        result = payload.get("aggs") if isinstance(payload, dict) else None
        return result if isinstance(result, dict) else {}

    # ============ 写入 ============

    async def create(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        payload = await self._request("POST", f"/tables/{table}/data", json=record)
        return payload if isinstance(payload, dict) else {}

    async def update(
        self,
        table: str,
        record_id: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        payload = await self._request(
            "PATCH", f"/tables/{table}/data/{record_id}", json=patch
        )
        return payload if isinstance(payload, dict) else {}

    async def delete(self, table: str, record_id: str) -> None:
        await self._request("DELETE", f"/tables/{table}/data/{record_id}")

    # ============ 健康检查 ============

    async def health_check(self, table: str) -> DataApiHealthResult:
        """以一次最小查询检查数据 API 可用性。"""
        if not self._configured:
            return DataApiHealthResult(status=HealthStatus.SKIPPED, configured=False)
        try:
            await self.query(table, page_size=1)
        except DataApiError as e:
            logger.warning(f"Data API health check failed: {e}")
            return DataApiHealthResult(
                status=HealthStatus.ERROR, configured=True, error=str(e)
            )
        return DataApiHealthResult(status=HealthStatus.OK, configured=True)
