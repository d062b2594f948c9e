"""Orders domain entities."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.modules.catalog.domain.entities import Variant


class OrderStatus(StrEnum):
    """订单状态。"""

    PENDING = "Pending"
    SUCCESS = "Success"
    FAILED = "Failed"


class PaymentOutcome(StrEnum):
    """网关交易状态归类。"""

    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"


class PaymentMethod(BaseModel):
    """支付方式（如 dana / bca / alfamart）。"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="支付方式标识")
    display_name: str = Field(..., description="展示名称")
    fee: int = Field(default=0, ge=0, description="手续费（IDR）")


class CheckoutProduct(BaseModel):
    """下单商品信息。"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    image_url: str = ""
    currency_name: str = ""


class Customer(BaseModel):
    """下单用户（游戏账号 + 联系方式）。"""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, description="游戏用户ID")
    zone_id: str | None = Field(default=None, description="区服ID")
    email: str = Field(default="user@example.com")
    phone: str = Field(default="08123456789")


class CheckoutRequest(BaseModel):
    """一次下单选择：商品 + 规格 + 支付方式。"""

    model_config = ConfigDict(frozen=True)

    product: CheckoutProduct
    customer: Customer
    variant: Variant
    payment_method: PaymentMethod

    @property
    def total_amount(self) -> int:
        return self.variant.price + self.payment_method.fee


class LineItem(BaseModel):
    """网关账单明细。"""

    model_config = ConfigDict(frozen=True)

    id: str
    price: int = Field(..., gt=0)
    quantity: int = Field(default=1, gt=0)
    name: str


class ChargeRequest(BaseModel):
    """支付 token 申请。"""

    model_config = ConfigDict(frozen=True)

    order_id: str
    gross_amount: int = Field(..., gt=0)
    payment_type: str
    customer_details: dict[str, str]
    item_details: tuple[LineItem, ...]

    def to_payload(self) -> dict[str, Any]:
        return {
            "payment_type": self.payment_type,
            "transaction_details": {
                "order_id": self.order_id,
                "gross_amount": self.gross_amount,
            },
            "customer_details": self.customer_details,
            "item_details": [item.model_dump() for item in self.item_details],
        }


class PaymentToken(BaseModel):
    """网关返回的支付 token。"""

    model_config = ConfigDict(frozen=True)

    token: str
    redirect_url: str
    order_id: str


class PaymentStatusReport(BaseModel):
    """网关交易状态查询结果。"""

    model_config = ConfigDict(frozen=True)

    order_id: str
    status_code: str | None = None
    transaction_status: str | None = None
    fraud_status: str | None = None

    @property
    def outcome(self) -> PaymentOutcome | None:
        """交易状态归类，未知状态返回 None。"""
        match self.transaction_status:
            case "settlement":
                return PaymentOutcome.SUCCESS
            case "capture":
                if self.fraud_status == "challenge":
                    return PaymentOutcome.PENDING
                return PaymentOutcome.SUCCESS
            case "pending":
                return PaymentOutcome.PENDING
            case "deny" | "cancel" | "expire" | "failure":
                return PaymentOutcome.FAILED
            case _:
                return None

    @property
    def order_status(self) -> OrderStatus | None:
        return {
            PaymentOutcome.SUCCESS: OrderStatus.SUCCESS,
            PaymentOutcome.PENDING: OrderStatus.PENDING,
            PaymentOutcome.FAILED: OrderStatus.FAILED,
        }.get(self.outcome)


class Order(BaseModel):
    """订单记录（只追加，最新一条为当前状态）。"""

    model_config = ConfigDict(frozen=True)

    order_id: str = Field(..., description="订单号")
    product_name: str = Field(..., description="商品名称")
    variant_name: str = Field(..., description="规格名称")
    payment_method: str = Field(..., description="支付方式名称")
    total_amount: int = Field(..., gt=0, description="订单金额（IDR）")
    status: OrderStatus = Field(..., description="订单状态")
    user_id: str = Field(..., description="游戏用户ID")
    zone_id: str = Field(default="", description="区服ID")
    user_email: str = Field(default="", description="联系邮箱")
    created_at: datetime = Field(..., description="下单时间")
    recorded_at: datetime = Field(..., description="本条记录写入时间")


OutcomeCallback = Callable[[PaymentStatusReport], Awaitable[None]]


@dataclass(frozen=True)
class PaymentCallbacks:
    """托管支付页的结果回调。"""

    on_success: OutcomeCallback
    on_pending: OutcomeCallback
    on_error: OutcomeCallback
    on_close: Callable[[], Awaitable[None]]
