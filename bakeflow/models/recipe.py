"""Recipe and RecipeIngredient models: the read-only production catalog."""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bakeflow.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from bakeflow.models.inventory_item import InventoryItem


class Recipe(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "recipes"

    recipe_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    cost_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, server_default="0"
    )
    shelf_life_days: Mapped[int] = mapped_column(Integer, nullable=False, server_default="3")
    active_status: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    ingredients: Mapped[list[RecipeIngredient]] = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def base_cost(self) -> Decimal:
        """Sum of ingredient cost contributions for one unit of this recipe."""
        return sum(
            (ingredient.cost_contribution() for ingredient in self.ingredients),
            Decimal("0"),
        )


class RecipeIngredient(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "recipe_ingredients"

    recipe_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False
    )
    inventory_item_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False
    )
    quantity_required: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)

    recipe: Mapped[Recipe] = relationship("Recipe", back_populates="ingredients", lazy="noload")
    inventory_item: Mapped[InventoryItem] = relationship("InventoryItem", lazy="selectin")

    __table_args__ = (Index("ix_recipe_ingredients_recipe_id", "recipe_id"),)

    def cost_contribution(self) -> Decimal:
        return self.inventory_item.cost_contribution(self.quantity_required)
