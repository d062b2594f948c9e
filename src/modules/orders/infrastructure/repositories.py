"""Order repositories."""

from collections import defaultdict
from datetime import datetime
from typing import Any

from src.core.infrastructure.data_api import DataApiClient, SortDirection, SortSpec, eq
from src.modules.orders.domain.entities import Order
from src.modules.orders.domain.ports import OrderRepository


class OrderMapper:
    """Order record-entity mapper（交易表字段为 camelCase）。"""

    def to_record(self, order: Order) -> dict[str, Any]:
        return {
            "trxId": order.order_id,
            "productName": order.product_name,
            "variantName": order.variant_name,
            "paymentMethod": order.payment_method,
            "amount": order.total_amount,
            "status": order.status.value,
            "userId": order.user_id,
            "zoneId": order.zone_id,
            "userEmail": order.user_email,
            "createdAt": order.created_at.isoformat(),
            "recordedAt": order.recorded_at.isoformat(),
        }

    def to_domain(self, record: dict[str, Any]) -> Order:
        created_at = datetime.fromisoformat(record["createdAt"])
        recorded = record.get("recordedAt")
        return Order(
            order_id=record["trxId"],
            product_name=record.get("productName") or "",
            variant_name=record.get("variantName") or "",
            payment_method=record.get("paymentMethod") or "",
            total_amount=record["amount"],
            status=record["status"],
            user_id=record.get("userId") or "",
            zone_id=record.get("zoneId") or "",
            user_email=record.get("userEmail") or "",
            created_at=created_at,
            recorded_at=datetime.fromisoformat(recorded) if recorded else created_at,
        )


class XataOrderRepository(OrderRepository):
    """基于数据 API 交易表的订单仓储。"""

    def __init__(
        self,
        client: DataApiClient,
        mapper: OrderMapper,
        table: str = "transactions",
    ):
        self.client = client
        self.mapper = mapper
        self.table = table

    async def save(self, order: Order) -> None:
        await self.client.create(self.table, self.mapper.to_record(order))

    async def latest(self, order_id: str) -> Order | None:
        records = await self.client.query(
            self.table,
            filter=eq("trxId", order_id),
            sort=[SortSpec("recordedAt", SortDirection.DESC)],
            page_size=1,
        )
        return self.mapper.to_domain(records[0]) if records else None

    async def history(self, order_id: str) -> list[Order]:
        records = await self.client.query(
            self.table,
            filter=eq("trxId", order_id),
            sort=[SortSpec("recordedAt", SortDirection.ASC)],
        )
        return [self.mapper.to_domain(record) for record in records]


class InMemoryOrderRepository(OrderRepository):
    """进程内订单仓储（后端未配置时使用）。"""

    def __init__(self) -> None:
        self._records: dict[str, list[Order]] = defaultdict(list)

    async def save(self, order: Order) -> None:
        self._records[order.order_id].append(order)

    async def latest(self, order_id: str) -> Order | None:
        records = self._records.get(order_id)
        return records[-1] if records else None

    async def history(self, order_id: str) -> list[Order]:
        return list(self._records.get(order_id, []))
