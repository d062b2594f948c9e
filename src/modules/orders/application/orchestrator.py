"""支付编排器。

将一次下单选择转换为订单并完成支付：

1. 生成订单号
2. 写入 Pending 订单（写入失败只记录日志，不阻断支付）
3. 向网关申请 token（规格明细 + 手续费明细）
4. 打开托管支付页，按回调结果追加订单记录

网关未配置时走模拟支付：直接写入 Success 订单，等待固定时长后返回成功。
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

from loguru import logger
from pydantic import BaseModel, Field

from src.core.infrastructure.data_api import DataApiError
from src.core.infrastructure.logging import BusinessEvents
from src.modules.orders.application.payment_types import map_payment_type
from src.modules.orders.domain.entities import (
    ChargeRequest,
    CheckoutRequest,
    LineItem,
    Order,
    OrderStatus,
    PaymentCallbacks,
    PaymentStatusReport,
)
from src.modules.orders.domain.exceptions import PaymentGatewayError
from src.modules.orders.domain.ids import generate_order_id
from src.modules.orders.domain.ports import (
    HostedPaymentFlow,
    OrderRepository,
    PaymentGateway,
)

PAYMENT_FAILED_MESSAGE = "Payment failed. Please try again."


class PaymentState(BaseModel):
    """支付流程状态（供界面展示）。"""

    loading: bool = Field(default=False, description="是否处理中")
    error: str | None = Field(default=None, description="面向用户的错误信息")
    success: bool = Field(default=False, description="是否支付成功")
    status: OrderStatus | None = Field(default=None, description="订单当前状态")
    order_id: str | None = Field(default=None, description="订单号")
    redirect_url: str | None = Field(default=None, description="托管支付页地址")
    mock: bool = Field(default=False, description="是否为模拟支付")
    abandoned: bool = Field(default=False, description="用户是否关闭了支付页")


def build_line_items(
    request: CheckoutRequest, admin_fee_label: str = "Biaya Admin"
) -> list[LineItem]:
    """账单明细：规格一行，手续费大于 0 时追加一行。"""
    items = [
        LineItem(
            id="-".join(request.variant.name.lower().split()),
            price=request.variant.price,
            quantity=1,
            name=f"{request.product.name} - {request.variant.name}",
        )
    ]
    if request.payment_method.fee > 0:
        items.append(
            LineItem(
                id="admin-fee",
                price=request.payment_method.fee,
                quantity=1,
                name=admin_fee_label,
            )
        )
    return items


class PaymentOrchestrator:
    """支付编排器。

    不对重复提交去重：每次 process() 都会生成新的订单号。
    """

    def __init__(
        self,
        orders: OrderRepository,
        gateway: PaymentGateway,
        hosted_flow: HostedPaymentFlow,
        *,
        mock_delay_sec: float = 2.0,
        admin_fee_label: str = "Biaya Admin",
        id_generator: Callable[[], str] = generate_order_id,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.orders = orders
        self.gateway = gateway
        self.hosted_flow = hosted_flow
        self.mock_delay_sec = mock_delay_sec
        self.admin_fee_label = admin_fee_label
        self._id_generator = id_generator
        self._clock = clock

    def build_charge(self, order_id: str, request: CheckoutRequest) -> ChargeRequest:
        return ChargeRequest(
            order_id=order_id,
            gross_amount=request.total_amount,
            payment_type=map_payment_type(request.payment_method.id),
            customer_details={
                "first_name": f"User {request.customer.user_id}",
                "email": request.customer.email,
                "phone": request.customer.phone,
            },
            item_details=tuple(build_line_items(request, self.admin_fee_label)),
        )

    async def process(self, request: CheckoutRequest) -> PaymentState:
        """执行一次支付。

        网关错误不会抛出，而是体现在返回状态的 error 字段中。
        """
        state = PaymentState(loading=True)
        try:
            if not self.gateway.is_configured:
                return await self._process_mock(request, state)
            return await self._process_live(request, state)
        finally:
            state.loading = False

    async def _process_mock(
        self, request: CheckoutRequest, state: PaymentState
    ) -> PaymentState:
        order_id = self._id_generator()
        state.order_id = order_id
        state.mock = True
        logger.info(f"Payment gateway not configured, mock payment for {order_id}")

        await self._persist(order_id, request, OrderStatus.SUCCESS, self._clock())
        await asyncio.sleep(self.mock_delay_sec)

        state.status = OrderStatus.SUCCESS
        state.success = True
        BusinessEvents.payment_outcome(order_id=order_id, outcome="success", mock=True)
        return state

    async def _process_live(
        self, request: CheckoutRequest, state: PaymentState
    ) -> PaymentState:
        order_id = self._id_generator()
        created_at = self._clock()
        state.order_id = order_id

        await self._persist(order_id, request, OrderStatus.PENDING, created_at)
        state.status = OrderStatus.PENDING

        charge = self.build_charge(order_id, request)
        try:
            token = await self.gateway.create_token(charge)
        except PaymentGatewayError as e:
            logger.error(f"Payment token request failed for {order_id}: {e.message}")
            await self._persist(order_id, request, OrderStatus.FAILED, created_at)
            state.status = OrderStatus.FAILED
            state.error = e.message
            BusinessEvents.payment_outcome(order_id=order_id, outcome="token_denied")
            return state

        state.redirect_url = token.redirect_url
        BusinessEvents.payment_token_created(
            order_id=order_id,
            gross_amount=charge.gross_amount,
            payment_type=charge.payment_type,
        )

        async def on_success(report: PaymentStatusReport) -> None:
            await self._persist(order_id, request, OrderStatus.SUCCESS, created_at)
            state.status = OrderStatus.SUCCESS
            state.success = True
            BusinessEvents.payment_outcome(order_id=order_id, outcome="success")

        async def on_pending(report: PaymentStatusReport) -> None:
            await self._persist(order_id, request, OrderStatus.PENDING, created_at)
            state.status = OrderStatus.PENDING
            BusinessEvents.payment_outcome(order_id=order_id, outcome="pending")

        async def on_error(report: PaymentStatusReport) -> None:
            logger.warning(
                f"Payment {order_id} failed: {report.transaction_status} "
                f"({report.status_code})"
            )
            await self._persist(order_id, request, OrderStatus.FAILED, created_at)
            state.status = OrderStatus.FAILED
            state.error = PAYMENT_FAILED_MESSAGE
            BusinessEvents.payment_outcome(order_id=order_id, outcome="error")

        async def on_close() -> None:
            logger.info(f"Payment page for {order_id} closed")
            state.abandoned = True
            BusinessEvents.payment_outcome(order_id=order_id, outcome="closed")

        await self.hosted_flow.open(
            token,
            PaymentCallbacks(
                on_success=on_success,
                on_pending=on_pending,
                on_error=on_error,
                on_close=on_close,
            ),
        )
        return state

    async def _persist(
        self,
        order_id: str,
        request: CheckoutRequest,
        status: OrderStatus,
        created_at: datetime,
    ) -> bool:
        """追加订单记录，失败只记录日志。"""
        order = Order(
            order_id=order_id,
            product_name=request.product.name,
            variant_name=request.variant.name,
            payment_method=request.payment_method.display_name,
            total_amount=request.total_amount,
            status=status,
            user_id=request.customer.user_id,
            zone_id=request.customer.zone_id or "",
            user_email=request.customer.email,
            created_at=created_at,
            recorded_at=self._clock(),
        )
        try:
            await self.orders.save(order)
        except DataApiError as e:
            logger.error(f"Error saving order {order_id} ({status.value}): {e}")
            BusinessEvents.order_persisted(
                order_id=order_id, status=status.value, success=False
            )
            return False
        BusinessEvents.order_persisted(order_id=order_id, status=status.value, success=True)
        return True
