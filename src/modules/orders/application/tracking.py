"""订单查询服务。"""

from pydantic import BaseModel

from src.core.domain.exceptions import ValidationError
from src.modules.orders.domain.entities import Order, OrderStatus, PaymentStatusReport
from src.modules.orders.domain.exceptions import OrderNotFoundError
from src.modules.orders.domain.ports import OrderRepository, PaymentGateway


class GatewayStatus(BaseModel):
    """网关侧交易状态。"""

    report: PaymentStatusReport
    order_status: OrderStatus | None = None


class OrderTrackingService:
    """按订单号查询订单状态。"""

    def __init__(self, orders: OrderRepository, gateway: PaymentGateway):
        self.orders = orders
        self.gateway = gateway

    @staticmethod
    def _normalize(order_id: str) -> str:
        order_id = (order_id or "").strip()
        if not order_id:
            raise ValidationError("Harap masukkan ID Transaksi.")
        return order_id

    async def track(self, order_id: str) -> Order:
        """获取订单当前状态（最新一条记录）。

        Raises:
            ValidationError: 订单号为空
            OrderNotFoundError: 订单不存在
        """
        order_id = self._normalize(order_id)
        order = await self.orders.latest(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def history(self, order_id: str) -> list[Order]:
        return await self.orders.history(self._normalize(order_id))

    async def check_gateway_status(self, order_id: str) -> GatewayStatus:
        """向支付网关查询交易状态。

        Raises:
            ValidationError: 订单号为空
            PaymentGatewayError: 网关查询失败
        """
        report = await self.gateway.check_status(self._normalize(order_id))
        return GatewayStatus(report=report, order_status=report.order_status)
