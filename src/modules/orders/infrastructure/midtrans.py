"""Midtrans 支付网关适配器。

- MidtransGateway：token 申请与交易状态查询（Basic Auth，用户名为 server key，密码为空）
- StatusPollingHostedFlow：输出托管支付页地址，并轮询交易状态直到得出结果
"""

import base64
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_fixed,
)

from src.core.infrastructure.health import HealthStatus, PaymentGatewayHealthResult
from src.modules.orders.domain.entities import (
    ChargeRequest,
    PaymentCallbacks,
    PaymentOutcome,
    PaymentStatusReport,
    PaymentToken,
)
from src.modules.orders.domain.exceptions import PaymentGatewayError
from src.modules.orders.domain.ports import HostedPaymentFlow, PaymentGateway


class MidtransGateway(PaymentGateway):
    """Midtrans Core API 客户端。"""

    def __init__(
        self,
        server_key: str,
        api_url: str,
        *,
        configured: bool = True,
        production: bool = False,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._server_key = server_key
        self._api_url = api_url.rstrip("/")
        self._configured = configured
        self._production = production
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
            auth = base64.b64encode(f"{self._server_key}:".encode()).decode()
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                headers={
                    "Authorization": f"Basic {auth}",
                    "Accept": "application/json",
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

    async def create_token(self, charge: ChargeRequest) -> PaymentToken:
        """申请支付 token。

        Raises:
            PaymentGatewayError: 网络错误、非 2xx 响应或响应中没有 token
        """
        try:
            response = await self.client.post("/charge", json=charge.to_payload())
            response.raise_for_status()
            result: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Midtrans charge failed for {charge.order_id}: {e}")
            raise PaymentGatewayError("Failed to create payment token") from e

        token = result.get("token") or ""
        redirect_url = result.get("redirect_url") or ""
        if not token and not redirect_url:
            logger.error(
                f"Midtrans charge for {charge.order_id} returned no token: "
                f"{result.get('status_message')}"
            )
            raise PaymentGatewayError("Failed to create payment token")

        return PaymentToken(token=token, redirect_url=redirect_url, order_id=charge.order_id)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def _fetch_status(self, order_id: str) -> dict[str, Any]:
        response = await self.client.get(f"/{order_id}/status")
        response.raise_for_status()
        return response.json()

    async def check_status(self, order_id: str) -> PaymentStatusReport:
        """查询交易状态。

        Raises:
            PaymentGatewayError: 查询失败
        """
        try:
            result = await self._fetch_status(order_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Midtrans status check failed for {order_id}: {e}")
            raise PaymentGatewayError("Failed to check payment status") from e

        return PaymentStatusReport(
            order_id=order_id,
            status_code=result.get("status_code"),
            transaction_status=result.get("transaction_status"),
            fraud_status=result.get("fraud_status"),
        )

    def health_check(self) -> PaymentGatewayHealthResult:
        return PaymentGatewayHealthResult(
            status=HealthStatus.OK if self._configured else HealthStatus.SKIPPED,
            configured=self._configured,
            production=self._production,
        )


class StatusPollingHostedFlow(HostedPaymentFlow):
    """通过轮询交易状态驱动回调的托管支付页。

    - settlement / capture：on_success
    - pending：on_pending（只触发一次，继续轮询）
    - deny / cancel / expire / failure：on_error
    - 轮询窗口结束仍无结果：on_close（视为用户关闭支付页）
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        *,
        poll_interval_sec: float = 5.0,
        window_sec: float = 900.0,
        publish: Callable[[PaymentToken], Any] | None = None,
    ):
        self.gateway = gateway
        self.poll_interval_sec = poll_interval_sec
        self.window_sec = window_sec
        self._publish = publish

    async def open(self, token: PaymentToken, callbacks: PaymentCallbacks) -> None:
        logger.info(f"Payment page for {token.order_id}: {token.redirect_url}")
        if self._publish is not None:
            self._publish(token)

        pending_notified = False

        async def poll_once() -> PaymentStatusReport | None:
            nonlocal pending_notified
            report = await self.gateway.check_status(token.order_id)
            outcome = report.outcome
            if outcome is PaymentOutcome.PENDING:
                if not pending_notified:
                    pending_notified = True
                    await callbacks.on_pending(report)
                return None
            if outcome is None:
                return None
            return report

        retrying = AsyncRetrying(
            retry=(
                retry_if_result(lambda report: report is None)
                | retry_if_exception_type(PaymentGatewayError)
            ),
            stop=stop_after_delay(self.window_sec),
            wait=wait_fixed(self.poll_interval_sec),
        )
        try:
            report = await retrying(poll_once)
        except RetryError:
            logger.info(f"Payment page for {token.order_id} closed without a result")
            await callbacks.on_close()
            return

        if report.outcome is PaymentOutcome.SUCCESS:
            await callbacks.on_success(report)
        else:
            await callbacks.on_error(report)
