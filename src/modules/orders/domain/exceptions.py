"""Orders domain exceptions."""

from src.core.domain.exceptions import DomainException, EntityNotFoundError


class PaymentGatewayError(DomainException):
    """支付网关请求失败（token 申请被拒、状态查询失败等）。"""

    error_code = "PAYMENT_GATEWAY_ERROR"


class OrderNotFoundError(EntityNotFoundError):
    """Order not found."""

    def __init__(self, order_id: str | None = None):
        super().__init__("Order", order_id)
