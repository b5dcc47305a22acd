"""Read-through Redis cache for resolved merchant/recipe prices."""

import json
import logging
import uuid
from collections.abc import Awaitable, Callable

import redis.asyncio as redis

from bakeflow.config import Settings, settings as default_settings
from bakeflow.modules.pricing.constants import CACHE_PREFIX
from bakeflow.modules.pricing.schemas import ResolvedPrice

logger = logging.getLogger(__name__)


class PricingCache:
    """Redis-backed cache keyed by (merchant, recipe).

    Entries live for ``pricing_cache_ttl`` seconds, which bounds how stale a
    price may be. The pricing write path calls :meth:`invalidate` so a new
    price is visible immediately. Redis errors degrade to a cache miss.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._redis = redis_client
        self._settings = settings or default_settings

    async def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self._settings.redis_url, decode_responses=True)
        return self._redis

    @staticmethod
    def make_key(merchant_id: uuid.UUID, recipe_id: uuid.UUID) -> str:
        return f"{CACHE_PREFIX}:merchant:{merchant_id}:recipe:{recipe_id}"

    async def get(self, merchant_id: uuid.UUID, recipe_id: uuid.UUID) -> ResolvedPrice | None:
        client = await self._get_redis()
        try:
            raw = await client.get(self.make_key(merchant_id, recipe_id))
        except redis.RedisError:
            logger.warning("Pricing cache read failed for merchant %s", merchant_id, exc_info=True)
            return None
        if raw is None:
            return None
        return ResolvedPrice.model_validate(json.loads(raw))

    async def set(
        self, merchant_id: uuid.UUID, recipe_id: uuid.UUID, price: ResolvedPrice
    ) -> None:
        client = await self._get_redis()
        try:
            await client.set(
                self.make_key(merchant_id, recipe_id),
                price.model_dump_json(),
                ex=self._settings.pricing_cache_ttl,
            )
        except redis.RedisError:
            logger.warning("Pricing cache write failed for merchant %s", merchant_id, exc_info=True)

    async def invalidate(self, merchant_id: uuid.UUID, recipe_id: uuid.UUID) -> None:
        client = await self._get_redis()
        await client.delete(self.make_key(merchant_id, recipe_id))

    async def get_or_set(
        self,
        merchant_id: uuid.UUID,
        recipe_id: uuid.UUID,
        factory: Callable[[], Awaitable[ResolvedPrice | None]],
    ) -> ResolvedPrice | None:
        """Return the cached price, otherwise compute it via ``factory`` and cache it."""
        cached = await self.get(merchant_id, recipe_id)
        if cached is not None:
            return cached
        value = await factory()
        if value is not None:
            await self.set(merchant_id, recipe_id, value)
        return value
