"""Tests for the payment orchestrator."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest

from src.core.infrastructure.data_api import DataApiError
from src.modules.catalog.domain.entities import Variant
from src.modules.orders.application.orchestrator import (
    PAYMENT_FAILED_MESSAGE,
    PaymentOrchestrator,
    build_line_items,
)
from src.modules.orders.application.payment_types import (
    map_payment_type,
    payment_method,
)
from src.modules.orders.domain.entities import (
    ChargeRequest,
    CheckoutProduct,
    CheckoutRequest,
    Customer,
    OrderStatus,
    PaymentCallbacks,
    PaymentStatusReport,
    PaymentToken,
)
from src.modules.orders.domain.exceptions import PaymentGatewayError
from src.modules.orders.domain.ports import HostedPaymentFlow, PaymentGateway
from src.modules.orders.infrastructure.repositories import InMemoryOrderRepository

pytestmark = pytest.mark.anyio

ORDER_ID = "ZLX-1718000000000-A1B2C3"
NOW = datetime(2024, 6, 10, 8, 0, tzinfo=UTC)


# ============================================
# 测试替身
# ============================================


class FakeGateway(PaymentGateway):
    def __init__(self, *, configured: bool = True, error: str | None = None):
        self._configured = configured
        self.error = error
        self.charges: list[ChargeRequest] = []

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def create_token(self, charge: ChargeRequest) -> PaymentToken:
        self.charges.append(charge)
        if self.error:
            raise PaymentGatewayError(self.error)
        return PaymentToken(
            token="snap-token",
            redirect_url="https://pay.example.com/snap-token",
            order_id=charge.order_id,
        )

    async def check_status(self, order_id: str) -> PaymentStatusReport:
        return PaymentStatusReport(order_id=order_id, transaction_status="pending")


class ScriptedFlow(HostedPaymentFlow):
    """按脚本依次触发回调的托管支付页。"""

    def __init__(self, *steps: str):
        self.steps = steps
        self.opened: list[PaymentToken] = []

    async def open(self, token: PaymentToken, callbacks: PaymentCallbacks) -> None:
        self.opened.append(token)
        for step in self.steps:
            report = PaymentStatusReport(
                order_id=token.order_id, status_code="200", transaction_status=step
            )
            if step == "close":
                await callbacks.on_close()
            elif step == "settlement":
                await callbacks.on_success(report)
            elif step == "pending":
                await callbacks.on_pending(report)
            else:
                await callbacks.on_error(report)


def make_request(fee: int = 0, method: str = "dana") -> CheckoutRequest:
    return CheckoutRequest(
        product=CheckoutProduct(name="Mobile Legends", currency_name="Diamonds"),
        customer=Customer(user_id="12345678", zone_id="1234", email="a@b.test", phone="0812"),
        variant=Variant(name="86 Diamonds", price=20000),
        payment_method=payment_method(method, fee=fee),
    )


def make_orchestrator(orders, gateway, flow) -> PaymentOrchestrator:
    return PaymentOrchestrator(
        orders,
        gateway,
        flow,
        mock_delay_sec=0,
        id_generator=lambda: ORDER_ID,
        clock=lambda: NOW,
    )


@pytest.fixture
def orders() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


# ============================================
# 账单明细
# ============================================


class TestLineItems:
    def test_no_fee_single_item(self) -> None:
        request = make_request(fee=0)
        items = build_line_items(request)

        assert request.total_amount == 20000
        assert len(items) == 1
        assert items[0].id == "86-diamonds"
        assert items[0].name == "Mobile Legends - 86 Diamonds"
        assert items[0].price == 20000

    def test_fee_adds_admin_item(self) -> None:
        request = make_request(fee=2500)
        items = build_line_items(request)

        assert request.total_amount == 22500
        assert [(i.id, i.price, i.name) for i in items[1:]] == [
            ("admin-fee", 2500, "Biaya Admin")
        ]
        assert sum(i.price * i.quantity for i in items) == request.total_amount

    def test_charge_payload(self, orders) -> None:
        orchestrator = make_orchestrator(orders, FakeGateway(), ScriptedFlow())
        charge = orchestrator.build_charge(ORDER_ID, make_request(fee=2500, method="bca"))

        payload = charge.to_payload()
        assert payload["payment_type"] == "bank_transfer"
        assert payload["transaction_details"] == {"order_id": ORDER_ID, "gross_amount": 22500}
        assert payload["customer_details"]["first_name"] == "User 12345678"
        assert len(payload["item_details"]) == 2


@pytest.mark.parametrize(
    ("method_id", "payment_type"),
    [
        ("dana", "dana"),
        ("gopay", "gopay"),
        ("bca", "bank_transfer"),
        ("mandiri", "echannel"),
        ("alfamart", "cstore"),
        ("something-new", "bank_transfer"),
    ],
)
def test_payment_type_map(method_id: str, payment_type: str) -> None:
    assert map_payment_type(method_id) == payment_type


# ============================================
# 模拟支付
# ============================================


class TestMockPayment:
    async def test_mock_payment_records_success(self, orders) -> None:
        gateway = FakeGateway(configured=False)
        orchestrator = make_orchestrator(orders, gateway, ScriptedFlow())

        state = await orchestrator.process(make_request())

        assert state.success is True
        assert state.mock is True
        assert state.loading is False
        assert state.status == OrderStatus.SUCCESS
        assert [o.status for o in await orders.history(ORDER_ID)] == [OrderStatus.SUCCESS]
        assert gateway.charges == []

    async def test_mock_payment_waits_configured_delay(self, orders) -> None:
        orchestrator = make_orchestrator(orders, FakeGateway(configured=False), ScriptedFlow())
        orchestrator.mock_delay_sec = 2.0

        with patch(
            "src.modules.orders.application.orchestrator.asyncio.sleep", new=AsyncMock()
        ) as sleep:
            await orchestrator.process(make_request())

        sleep.assert_awaited_once_with(2.0)


# ============================================
# 网关支付
# ============================================


class TestLivePayment:
    async def test_success_appends_pending_then_success(self, orders) -> None:
        flow = ScriptedFlow("settlement")
        orchestrator = make_orchestrator(orders, FakeGateway(), flow)

        state = await orchestrator.process(make_request(fee=2500))

        assert state.success is True
        assert state.error is None
        assert state.redirect_url == "https://pay.example.com/snap-token"
        history = await orders.history(ORDER_ID)
        assert [o.status for o in history] == [OrderStatus.PENDING, OrderStatus.SUCCESS]
        assert history[-1].total_amount == 22500
        assert history[-1].payment_method == "DANA"
        assert flow.opened[0].token == "snap-token"

    async def test_pending_is_not_success(self, orders) -> None:
        orchestrator = make_orchestrator(orders, FakeGateway(), ScriptedFlow("pending"))

        state = await orchestrator.process(make_request())

        assert state.success is False
        assert state.error is None
        assert state.status == OrderStatus.PENDING
        assert (await orders.latest(ORDER_ID)).status == OrderStatus.PENDING

    async def test_error_marks_order_failed(self, orders) -> None:
        orchestrator = make_orchestrator(orders, FakeGateway(), ScriptedFlow("deny"))

        state = await orchestrator.process(make_request())

        assert state.success is False
        assert state.error == PAYMENT_FAILED_MESSAGE
        assert state.status == OrderStatus.FAILED
        assert (await orders.latest(ORDER_ID)).status == OrderStatus.FAILED

    async def test_close_leaves_order_pending(self, orders) -> None:
        orchestrator = make_orchestrator(orders, FakeGateway(), ScriptedFlow("close"))

        state = await orchestrator.process(make_request())

        assert state.abandoned is True
        assert state.success is False
        assert state.error is None
        assert [o.status for o in await orders.history(ORDER_ID)] == [OrderStatus.PENDING]

    async def test_token_denied_surfaces_gateway_message(self, orders) -> None:
        flow = ScriptedFlow("settlement")
        orchestrator = make_orchestrator(
            orders, FakeGateway(error="Failed to create payment token"), flow
        )

        state = await orchestrator.process(make_request())

        assert state.error == "Failed to create payment token"
        assert state.success is False
        assert flow.opened == []
        assert [o.status for o in await orders.history(ORDER_ID)] == [
            OrderStatus.PENDING,
            OrderStatus.FAILED,
        ]

    async def test_persistence_failure_does_not_block_payment(self) -> None:
        orders = InMemoryOrderRepository()
        orders.save = AsyncMock(side_effect=DataApiError("backend down", 503))
        orchestrator = make_orchestrator(orders, FakeGateway(), ScriptedFlow("settlement"))

        state = await orchestrator.process(make_request())

        assert state.success is True
        assert orders.save.await_count == 2

    async def test_each_process_call_gets_new_order(self, orders) -> None:
        ids = iter(["ZLX-1-AAAAAA", "ZLX-2-BBBBBB"])
        orchestrator = PaymentOrchestrator(
            orders, FakeGateway(), ScriptedFlow("settlement"), id_generator=lambda: next(ids)
        )

        first = await orchestrator.process(make_request())
        second = await orchestrator.process(make_request())

        assert first.order_id != second.order_id
