"""Tests for the Redis-backed PricingCache."""

import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from bakeflow.models.enums import PriceTier
from bakeflow.modules.pricing.cache import PricingCache
from bakeflow.modules.pricing.schemas import ResolvedPrice


def _price(amount="2.50"):
    return ResolvedPrice(
        unit_price=Decimal(amount),
        tier=PriceTier.STANDARD,
        base_cost=Decimal("1.25"),
        markup_percentage=Decimal("100.00"),
        effective_date=date(2026, 3, 1),
    )


class TestPricingCache:
    """Read-through caching keyed by merchant and recipe."""

    @pytest.mark.asyncio
    async def test_set_uses_configured_ttl(self, fake_redis, settings):
        cache = PricingCache(fake_redis, settings)
        merchant_id, recipe_id = uuid.uuid4(), uuid.uuid4()

        await cache.set(merchant_id, recipe_id, _price())

        key = PricingCache.make_key(merchant_id, recipe_id)
        assert key == f"pricing:merchant:{merchant_id}:recipe:{recipe_id}"
        assert fake_redis.expiry[key] == settings.pricing_cache_ttl
        assert await cache.get(merchant_id, recipe_id) == _price()

    @pytest.mark.asyncio
    async def test_get_or_set_calls_factory_once(self, fake_redis, settings):
        cache = PricingCache(fake_redis, settings)
        factory = AsyncMock(return_value=_price("3.10"))
        merchant_id, recipe_id = uuid.uuid4(), uuid.uuid4()

        first = await cache.get_or_set(merchant_id, recipe_id, factory)
        second = await cache.get_or_set(merchant_id, recipe_id, factory)

        assert first.unit_price == second.unit_price == Decimal("3.10")
        factory.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_none_results_are_not_cached(self, fake_redis, settings):
        cache = PricingCache(fake_redis, settings)
        factory = AsyncMock(return_value=None)

        assert await cache.get_or_set(uuid.uuid4(), uuid.uuid4(), factory) is None
        assert fake_redis.store == {}

    @pytest.mark.asyncio
    async def test_redis_errors_degrade_to_cache_miss(self, settings):
        client = AsyncMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")
        cache = PricingCache(client, settings)
        factory = AsyncMock(return_value=_price())

        price = await cache.get_or_set(uuid.uuid4(), uuid.uuid4(), factory)

        assert price == _price()
        factory.assert_awaited_once()
