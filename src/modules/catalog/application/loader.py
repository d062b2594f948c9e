"""目录预加载器（Cache-Through Data Loader）。

加载流程：
    Idle -> Validating -> 缓存命中: LoadingFromCache -> Done
                       -> 缓存未命中: QueryingBackend -> SavingToCache -> Done

并行看门狗：超过 timeout_sec 仍未得到结果时停止等待（不取消进行中的任务），
进度强制置为 100，返回最小占位目录并根据已到达的进度给出超时原因。

缓存中保存的是完整目录，筛选条件在进程内对快照生效。
"""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from src.core.infrastructure.cache import CacheClient, CacheKeys
from src.core.infrastructure.data_api import DataApiError
from src.core.infrastructure.logging import BusinessEvents
from src.modules.catalog.application.placeholder import (
    demo_snapshot,
    placeholder_snapshot,
)
from src.modules.catalog.domain.entities import (
    Banner,
    CatalogFilters,
    CatalogSnapshot,
    Product,
)
from src.modules.catalog.domain.repository import BannerRepository, ProductRepository

PROGRESS_START = 0
PROGRESS_VALIDATING = 10
PROGRESS_CACHE_HIT = 20
PROGRESS_QUERYING = 25
PROGRESS_BACKEND_ANSWERED = 60
PROGRESS_SAVING = 90
PROGRESS_DONE = 100


def timeout_reason_for(progress: int) -> str:
    """根据超时时已到达的进度给出原因。"""
    if progress < PROGRESS_CACHE_HIT:
        return "Koneksi ke cache server lambat"
    if progress < PROGRESS_BACKEND_ANSWERED:
        return "Database membutuhkan waktu lebih lama untuk merespon"
    if progress < PROGRESS_SAVING:
        return "Proses caching memakan waktu lebih lama"
    return "Finalisasi data membutuhkan waktu ekstra"


class LoadStage(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    LOADING_FROM_CACHE = "loading_from_cache"
    QUERYING_BACKEND = "querying_backend"
    SAVING_TO_CACHE = "saving_to_cache"
    DONE = "done"


class CatalogSource(StrEnum):
    """快照来源。"""

    CACHE = "cache"
    BACKEND = "backend"
    DEMO = "demo"
    PLACEHOLDER = "placeholder"


class CatalogLoadResult(BaseModel):
    """一次加载的结果。"""

    model_config = ConfigDict(frozen=True)

    snapshot: CatalogSnapshot = Field(..., description="目录快照（已应用筛选）")
    source: CatalogSource = Field(..., description="快照来源")
    error: str | None = Field(default=None, description="后端查询失败原因")
    timeout_reason: str | None = Field(default=None, description="看门狗超时原因")
    progress: int = Field(default=PROGRESS_DONE, ge=0, le=100)

    @property
    def timed_out(self) -> bool:
        return self.timeout_reason is not None


@dataclass(frozen=True)
class LoadProgress:
    """进度事件，最后一个事件携带加载结果。"""

    progress: int
    stage: LoadStage
    result: CatalogLoadResult | None = None


ProgressCallback = Callable[[LoadProgress], Any]


@dataclass(frozen=True)
class CatalogCacheTtl:
    """目录各缓存键的 TTL（秒）。"""

    products: int = 600
    banners: int = 300
    categories: int = 1800
    popular_products: int = 600

    @property
    def longest(self) -> int:
        return max(self.products, self.banners, self.categories, self.popular_products)


class _ProgressTracker:
    """单调不减的进度记录，完成后忽略迟到的进度更新。"""

    def __init__(self, on_progress: ProgressCallback | None):
        self._on_progress = on_progress
        self.value = PROGRESS_START
        self.closed = False

    def advance(
        self,
        value: int,
        stage: LoadStage,
        result: CatalogLoadResult | None = None,
    ) -> None:
        if self.closed or value < self.value:
            return
        self.value = value
        if value >= PROGRESS_DONE:
            self.closed = True
        if self._on_progress is not None:
            self._on_progress(LoadProgress(progress=value, stage=stage, result=result))


class CatalogLoader:
    """目录预加载器。"""

    def __init__(
        self,
        cache: CacheClient,
        products: ProductRepository,
        banners: BannerRepository,
        keys: CacheKeys,
        *,
        ttl: CatalogCacheTtl | None = None,
        freshness_sec: float = 300,
        timeout_sec: float = 10.0,
        clock: Callable[[], float] = time.time,
    ):
        self.cache = cache
        self.products = products
        self.banners = banners
        self.keys = keys
        self.ttl = ttl or CatalogCacheTtl()
        self.freshness_sec = freshness_sec
        self.timeout_sec = timeout_sec
        self._clock = clock
        # 进行中的加载与缓存回写任务（保持引用直到完成）
        self._pending: set[asyncio.Task[Any]] = set()

    async def load(
        self,
        filters: CatalogFilters | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> CatalogLoadResult:
        """加载目录。

        不会因缓存或后端故障抛出异常：后端失败时返回占位目录并附带 error，
        超时返回占位目录并附带 timeout_reason。
        """
        tracker = _ProgressTracker(on_progress)
        tracker.advance(PROGRESS_START, LoadStage.IDLE)

        task = self._track(asyncio.create_task(self._run(tracker)))
        done, _ = await asyncio.wait({task}, timeout=self.timeout_sec)

        if task in done:
            result = task.result()
        else:
            reason = timeout_reason_for(tracker.value)
            logger.warning(
                f"Catalog load exceeded {self.timeout_sec}s at progress "
                f"{tracker.value}: {reason}"
            )
            BusinessEvents.catalog_load_timed_out(progress=tracker.value, reason=reason)
            task.add_done_callback(self._log_late_failure)
            result = CatalogLoadResult(
                snapshot=placeholder_snapshot(),
                source=CatalogSource.PLACEHOLDER,
                timeout_reason=reason,
            )

        result = result.model_copy(
            update={
                "snapshot": result.snapshot.filtered(filters),
                "progress": PROGRESS_DONE,
            }
        )
        tracker.advance(PROGRESS_DONE, LoadStage.DONE, result=result)
        return result

    async def stream(
        self, filters: CatalogFilters | None = None
    ) -> AsyncIterator[LoadProgress]:
        """以异步迭代器形式输出进度事件，最后一个事件携带结果。"""
        queue: asyncio.Queue[LoadProgress] = asyncio.Queue()
        task = asyncio.create_task(self.load(filters, on_progress=queue.put_nowait))
        try:
            while True:
                event = await queue.get()
                yield event
                if event.result is not None:
                    break
        finally:
            await task

    async def drain(self) -> None:
        """等待所有进行中的加载与缓存回写任务结束（关闭前调用）。"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ============ 内部流程 ============

    async def _run(self, tracker: _ProgressTracker) -> CatalogLoadResult:
        started = time.perf_counter()
        tracker.advance(PROGRESS_VALIDATING, LoadStage.VALIDATING)

        if await self._is_cache_fresh():
            tracker.advance(PROGRESS_CACHE_HIT, LoadStage.LOADING_FROM_CACHE)
            snapshot = await self._load_from_cache()
            if snapshot is not None:
                self._log_loaded(CatalogSource.CACHE, snapshot, started)
                return CatalogLoadResult(snapshot=snapshot, source=CatalogSource.CACHE)

        tracker.advance(PROGRESS_QUERYING, LoadStage.QUERYING_BACKEND)
        try:
            snapshot, source = await self._load_from_backend()
        except DataApiError as e:
            logger.error(f"Catalog backend query failed: {e}")
            return CatalogLoadResult(
                snapshot=placeholder_snapshot(),
                source=CatalogSource.PLACEHOLDER,
                error=str(e),
            )
        tracker.advance(PROGRESS_BACKEND_ANSWERED, LoadStage.QUERYING_BACKEND)

        tracker.advance(PROGRESS_SAVING, LoadStage.SAVING_TO_CACHE)
        self._track(asyncio.create_task(self._write_back(snapshot)))

        self._log_loaded(source, snapshot, started)
        return CatalogLoadResult(snapshot=snapshot, source=source)

    async def _is_cache_fresh(self) -> bool:
        if not self.cache.remote_available:
            return False
        timestamp = await self.cache.get(self.keys.cache_timestamp)
        if not isinstance(timestamp, int | float):
            return False
        return self._clock() - timestamp < self.freshness_sec

    async def _load_from_cache(self) -> CatalogSnapshot | None:
        products, banners, categories, popular = await self.cache.mget(
            self.keys.catalog_keys()
        )
        if products is None or banners is None:
            return None
        try:
            return CatalogSnapshot(
                products=tuple(Product.model_validate(p) for p in products),
                banners=tuple(Banner.model_validate(b) for b in banners),
                categories=tuple(categories or ()),
                popular_products=tuple(Product.model_validate(p) for p in popular or ()),
            )
        except (PydanticValidationError, TypeError) as e:
            logger.warning(f"Cached catalog is unreadable, reloading from backend: {e}")
            return None

    async def _load_from_backend(self) -> tuple[CatalogSnapshot, CatalogSource]:
        if not self.products.is_configured:
            logger.info("Data API not configured, using demo catalog")
            return demo_snapshot(), CatalogSource.DEMO

        products, banners = await asyncio.gather(
            self.products.list_products(page_size=100),
            self.banners.list_active(),
        )
        return CatalogSnapshot.build(products, banners), CatalogSource.BACKEND

    async def _write_back(self, snapshot: CatalogSnapshot) -> None:
        data = snapshot.model_dump(mode="json")
        ok = await self.cache.mset(
            [
                (self.keys.products, data["products"], self.ttl.products),
                (self.keys.banners, data["banners"], self.ttl.banners),
                (self.keys.categories, data["categories"], self.ttl.categories),
                (
                    self.keys.popular_products,
                    data["popular_products"],
                    self.ttl.popular_products,
                ),
                (self.keys.cache_timestamp, self._clock(), self.ttl.longest),
            ]
        )
        if not ok:
            logger.warning("Failed to save catalog to cache")

    def _track(self, task: asyncio.Task[Any]) -> asyncio.Task[Any]:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @staticmethod
    def _log_late_failure(task: asyncio.Task[Any]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Catalog load failed after timeout: {task.exception()}")

    @staticmethod
    def _log_loaded(
        source: CatalogSource, snapshot: CatalogSnapshot, started: float
    ) -> None:
        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"Catalog loaded from {source.value}: {len(snapshot.products)} products "
            f"in {duration_ms}ms"
        )
        BusinessEvents.catalog_loaded(
            source=source.value,
            product_count=len(snapshot.products),
            duration_ms=duration_ms,
        )
