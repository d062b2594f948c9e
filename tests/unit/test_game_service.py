"""Tests for GameService (product queries and admin writes)."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.core.domain.exceptions import ValidationError
from src.core.infrastructure.cache import CacheClient
from src.modules.catalog.application.game_service import (
    GameService,
    ProductDraft,
    ProductPatch,
    validate_json_fields,
)
from src.modules.catalog.domain.entities import (
    CatalogFilters,
    MethodVariants,
    ProductCategory,
    ProductStatus,
)
from src.modules.catalog.domain.exceptions import (
    BackendNotConfiguredError,
    ProductNotFoundError,
)
from src.modules.catalog.infrastructure.mappers import ProductMapper

pytestmark = pytest.mark.anyio

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.is_configured = True
    repo.list_products = AsyncMock(return_value=[])
    repo.get_by_slug = AsyncMock(return_value=None)
    repo.search_by_name = AsyncMock(return_value=[])
    repo.create = AsyncMock()
    repo.update = AsyncMock(return_value={"id": "rec_1"})
    repo.delete = AsyncMock()
    repo.aggregate_stats = AsyncMock(return_value={})
    repo.category_breakdown = AsyncMock(return_value={})
    return repo


@pytest.fixture
def service(repository) -> GameService:
    return GameService(repository, clock=lambda: FIXED_NOW)


# ============================================
# 查询
# ============================================


class TestQueries:
    async def test_list_defaults_to_active_status(self, service, repository) -> None:
        await service.list_products(CatalogFilters(category=ProductCategory.GAME))

        filters = repository.list_products.await_args.args[0]
        assert filters.status == ProductStatus.ACTIVE
        assert filters.category == ProductCategory.GAME

    async def test_list_keeps_explicit_status(self, service, repository) -> None:
        await service.list_products(CatalogFilters(status=ProductStatus.MAINTENANCE))

        filters = repository.list_products.await_args.args[0]
        assert filters.status == ProductStatus.MAINTENANCE

    async def test_list_requires_backend(self, service, repository) -> None:
        repository.is_configured = False

        with pytest.raises(BackendNotConfiguredError):
            await service.list_products()

    async def test_get_popular_limits_results(
        self, service, repository, sample_product_record
    ) -> None:
        product = ProductMapper().to_domain(sample_product_record)
        repository.list_products.return_value = [product] * 10

        assert len(await service.get_popular(limit=8)) == 8
        assert repository.list_products.await_args.args[0].is_popular is True


# ============================================
# 规格查找
# ============================================


class TestFindVariants:
    async def test_empty_slug_rejected(self, service) -> None:
        with pytest.raises(ValidationError, match="Game slug is required"):
            await service.find_variants("")

    async def test_demo_catalog_when_not_configured(self, service, repository) -> None:
        repository.is_configured = False

        product, variants = await service.find_variants("roblox")

        assert product.name == "Roblox"
        assert isinstance(variants, MethodVariants)
        repository.search_by_name.assert_not_awaited()

    async def test_demo_catalog_matches_multi_word_slug(self, service, repository) -> None:
        repository.is_configured = False

        product, _ = await service.find_variants("mobile-legends")
        assert product.name == "Mobile Legends"

    async def test_searches_backend_by_name(
        self, service, repository, sample_product_record
    ) -> None:
        product = ProductMapper().to_domain(sample_product_record)
        repository.search_by_name.return_value = [product]

        found, variants = await service.find_variants("mobile-legends")

        assert found == product
        assert variants == product.variants
        repository.search_by_name.assert_awaited_once_with(
            "mobile legends", "mobile legends", limit=1
        )

    async def test_backend_result_is_cached_per_slug(
        self, repository, sample_product_record, clock
    ) -> None:
        cache = CacheClient(None, clock=clock)
        await cache.start()
        service = GameService(repository, cache=cache, variants_ttl=60)
        product = ProductMapper().to_domain(sample_product_record)
        repository.search_by_name.return_value = [product]

        first, _ = await service.find_variants("mobile-legends")
        second, variants = await service.find_variants("mobile-legends")

        assert first == second == product
        assert variants == product.variants
        repository.search_by_name.assert_awaited_once()

        clock.advance(60)
        await service.find_variants("mobile-legends")
        assert repository.search_by_name.await_count == 2

    async def test_not_found(self, service) -> None:
        with pytest.raises(ProductNotFoundError):
            await service.find_variants("unknown-game")


# ============================================
# 写操作
# ============================================


class TestWrites:
    async def test_create_generates_slug_and_timestamps(self, service, repository) -> None:
        draft = ProductDraft(
            name="Honor of Kings",
            image_url="https://example.com/hok.jpg",
            variants='[{"name": "16 Tokens", "price": 5000}]',
        )

        await service.create(draft)

        record = repository.create.await_args.args[0]
        assert record["slug"] == "honor-of-kings"
        assert record["imageUrl"] == "https://example.com/hok.jpg"
        assert record["category"] == "Game"
        assert record["isPopular"] is False
        assert record["createdAt"] == FIXED_NOW.isoformat()
        assert record["updatedAt"] == FIXED_NOW.isoformat()

    async def test_create_rejects_invalid_json(self, service, repository) -> None:
        draft = ProductDraft(name="X", tags="[broken")

        with pytest.raises(ValidationError, match="Invalid JSON format"):
            await service.create(draft)
        repository.create.assert_not_awaited()

    async def test_create_rejects_mixed_variants(self, service) -> None:
        draft = ProductDraft(
            name="X",
            variants='[{"method": "login", "packages": []}, {"name": "a", "price": 1}]',
        )

        with pytest.raises(ValidationError, match="Invalid variants"):
            await service.create(draft)

    async def test_create_requires_backend(self, service, repository) -> None:
        repository.is_configured = False

        with pytest.raises(BackendNotConfiguredError):
            await service.create(ProductDraft(name="X"))

    async def test_patch_only_sends_set_fields(self, service, repository) -> None:
        await service.toggle_popularity("rec_1", False)

        repository.update.assert_awaited_once_with(
            "rec_1", {"isPopular": False, "updatedAt": FIXED_NOW.isoformat()}
        )

    async def test_update_status(self, service, repository) -> None:
        await service.update_status("rec_1", ProductStatus.MAINTENANCE)

        patch = repository.update.await_args.args[1]
        assert patch["status"] == "maintenance"

    async def test_patch_accepts_camel_case(self) -> None:
        patch = ProductPatch.model_validate({"imageUrl": "https://x.test/a.png"})
        assert patch.to_record() == {"imageUrl": "https://x.test/a.png"}

    async def test_delete(self, service, repository) -> None:
        await service.delete("rec_1")
        repository.delete.assert_awaited_once_with("rec_1")


def test_validate_json_fields_accepts_method_groups() -> None:
    validate_json_fields(
        {
            "variants": '[{"method": "login", "name": "Via Login", "packages": '
            '[{"name": "80 Robux", "price": 12000}]}]',
            "tags": "[]",
        }
    )


async def test_get_stats_fills_missing_aggregates(service, repository) -> None:
    repository.aggregate_stats.return_value = {
        "total_games": 7,
        "popular_games": 4,
        "avg_rating": 4.7,
        "total_reviews": None,
    }
    repository.category_breakdown.return_value = {"Game": 6, "Voucher": 1}

    stats = await service.get_stats()

    assert stats.total_games == 7
    assert stats.popular_games == 4
    assert stats.total_reviews == 0
    assert stats.categories == {"Game": 6, "Voucher": 1}
