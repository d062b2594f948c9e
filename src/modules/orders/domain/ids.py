"""订单号生成。

格式：ZLX-{毫秒时间戳}-{6 位大写 base36 随机串}，如 ZLX-1718000000000-A1B2C3。
同一进程内时间戳单调不减（系统时钟回拨时沿用上一次的时间戳）。
"""

import secrets
import string
import time
from collections.abc import Callable

ORDER_ID_PREFIX = "ZLX"
SUFFIX_ALPHABET = string.digits + string.ascii_uppercase
SUFFIX_LENGTH = 6


class OrderIdGenerator:
    """订单号生成器。"""

    def __init__(self, clock_ms: Callable[[], int] = lambda: time.time_ns() // 1_000_000):
        self._clock_ms = clock_ms
        self._last_ms = 0

    def _timestamp(self) -> int:
        self._last_ms = max(self._last_ms, self._clock_ms())
        return self._last_ms

    def __call__(self) -> str:
        suffix = "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(SUFFIX_LENGTH))
        return f"{ORDER_ID_PREFIX}-{self._timestamp()}-{suffix}"


generate_order_id = OrderIdGenerator()
