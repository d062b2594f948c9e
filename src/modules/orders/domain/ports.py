"""Orders ports (repository + payment gateway)."""

from abc import ABC, abstractmethod

from src.modules.orders.domain.entities import (
    ChargeRequest,
    Order,
    PaymentCallbacks,
    PaymentStatusReport,
    PaymentToken,
)


class OrderRepository(ABC):
    """订单仓储接口（只追加）。"""

    @abstractmethod
    async def save(self, order: Order) -> None:
        """追加一条订单记录。"""
        pass

    @abstractmethod
    async def latest(self, order_id: str) -> Order | None:
        """获取订单的最新记录（当前状态）。"""
        pass

    @abstractmethod
    async def history(self, order_id: str) -> list[Order]:
        """获取订单的全部记录（按写入时间升序）。"""
        pass


class PaymentGateway(ABC):
    """支付网关接口。"""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """网关是否已配置（未配置时走模拟支付）。"""
        pass

    @abstractmethod
    async def create_token(self, charge: ChargeRequest) -> PaymentToken:
        """申请支付 token。

        Raises:
            PaymentGatewayError: 申请失败
        """
        pass

    @abstractmethod
    async def check_status(self, order_id: str) -> PaymentStatusReport:
        """查询交易状态。

        Raises:
            PaymentGatewayError: 查询失败
        """
        pass


class HostedPaymentFlow(ABC):
    """托管支付页。

    open() 在支付结束（成功/失败/用户关闭）后返回，期间按结果调用回调。
    """

    @abstractmethod
    async def open(self, token: PaymentToken, callbacks: PaymentCallbacks) -> None:
        pass
