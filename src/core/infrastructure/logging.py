"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般调试日志
2. structlog: 用于关键业务事件的结构化日志（目录加载、订单、支付）
"""

import sys
from typing import Any

import structlog
from loguru import logger

from src.core.config import Settings


def setup_logging(settings: Settings) -> None:
    """Configure application logging with structlog and loguru."""
    _configure_structlog(settings)
    _configure_loguru(settings)

    logger.info(f"Logging configured with level: {settings.LOG_LEVEL}")


def _configure_structlog(settings: Settings) -> None:
    """配置 structlog 处理器链。"""
    # 根据环境选择渲染器
    if settings.ENVIRONMENT == "local":
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(settings.LOG_LEVEL)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru(settings: Settings) -> None:
    """配置 loguru。"""
    logger.remove()

    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/zhivlux_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# ============================================================================
# 业务事件日志记录器
# ============================================================================


class BusinessEvents:
    """业务事件日志助手类。

    提供统一的业务事件日志记录接口，确保事件格式一致。

    Usage:
        from src.core.infrastructure.logging import BusinessEvents

        BusinessEvents.order_persisted(order_id="ZLX-...", status="Pending")
        BusinessEvents.payment_outcome(order_id="ZLX-...", outcome="success")
    """

    _log = structlog.get_logger("business.events")

    @classmethod
    def catalog_loaded(
        cls,
        source: str,
        product_count: int,
        duration_ms: int,
        **extra: Any,
    ) -> None:
        """记录目录加载完成事件。"""
        cls._log.info(
            "catalog_loaded",
            event_type="catalog",
            source=source,
            product_count=product_count,
            duration_ms=duration_ms,
            **extra,
        )

    @classmethod
    def catalog_load_timed_out(
        cls,
        progress: int,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录目录加载超时事件。"""
        cls._log.warning(
            "catalog_load_timed_out",
            event_type="catalog",
            progress=progress,
            reason=reason,
            **extra,
        )

    @classmethod
    def cache_degraded(
        cls,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录远程缓存降级到本地缓存事件。"""
        cls._log.warning(
            "cache_degraded",
            event_type="cache",
            reason=reason,
            **extra,
        )

    @classmethod
    def order_persisted(
        cls,
        order_id: str,
        status: str,
        success: bool,
        **extra: Any,
    ) -> None:
        """记录订单状态落库事件。"""
        level = "info" if success else "warning"
        getattr(cls._log, level)(
            "order_persisted",
            event_type="order",
            order_id=order_id,
            status=status,
            success=success,
            **extra,
        )

    @classmethod
    def payment_token_created(
        cls,
        order_id: str,
        gross_amount: int,
        payment_type: str,
        **extra: Any,
    ) -> None:
        """记录支付 token 创建事件。"""
        cls._log.info(
            "payment_token_created",
            event_type="payment",
            order_id=order_id,
            gross_amount=gross_amount,
            payment_type=payment_type,
            **extra,
        )

    @classmethod
    def payment_outcome(
        cls,
        order_id: str,
        outcome: str,
        mock: bool = False,
        **extra: Any,
    ) -> None:
        """记录支付结果回调事件。"""
        cls._log.info(
            "payment_outcome",
            event_type="payment",
            order_id=order_id,
            outcome=outcome,
            mock=mock,
            **extra,
        )

    @classmethod
    def feature_degraded(
        cls,
        feature: str,
        reason: str,
        **extra: Any,
    ) -> None:
        """记录功能降级事件。"""
        cls._log.warning(
            "feature_degraded",
            event_type="degradation",
            feature=feature,
            reason=reason,
            **extra,
        )
