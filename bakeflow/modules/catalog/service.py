"""Read-only lookups over the recipe / ingredient catalog."""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.models.recipe import Recipe


class CatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_recipe(self, recipe_id: uuid.UUID) -> Recipe | None:
        """Get a recipe with its ingredients and their inventory items loaded."""
        result = await self.db.execute(select(Recipe).where(Recipe.id == recipe_id))
        return result.scalar_one_or_none()

    async def get_recipes(self, recipe_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Recipe]:
        ids = set(recipe_ids)
        if not ids:
            return {}
        result = await self.db.execute(select(Recipe).where(Recipe.id.in_(list(ids))))
        return {recipe.id: recipe for recipe in result.scalars().all()}
