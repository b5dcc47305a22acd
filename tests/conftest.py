"""Pytest fixtures for bakeflow service tests.

Services run against a file-backed SQLite database through aiosqlite so that
the orchestrator can open its own sessions alongside the test session.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import bakeflow.models  # noqa: F401  (populate metadata)
from bakeflow.clock import business_today
from bakeflow.config import Settings
from bakeflow.database.base import Base
from bakeflow.models.enums import (
    Department,
    MerchantStatus,
    StaffRole,
    TrackingStatus,
    UserStatus,
    WorkflowType,
)
from bakeflow.models.inventory_item import InventoryItem
from bakeflow.models.merchant import Merchant
from bakeflow.models.merchant_product_tracking import MerchantProductTracking
from bakeflow.models.recipe import Recipe, RecipeIngredient
from bakeflow.models.user import User
from bakeflow.models.workflow import Workflow

# Bake -> quality check -> package
STANDARD_STEPS = [
    {"step_name": "Bake", "assigned_role": "baker", "required_department": "production"},
    {
        "step_name": "Quality check",
        "assigned_role": "quality_inspector",
        "required_department": "quality_control",
        "step_type": "quality",
    },
    {"step_name": "Package", "assigned_role": "packer", "required_department": "packaging"},
]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        business_timezone="UTC",
        high_value_order_threshold=500.0,
        waste_warning_days=1,
        waste_alert_horizon_days=2,
        notifications_enabled=True,
    )


@pytest.fixture
def today(settings) -> date:
    return business_today(settings)


@pytest.fixture
def notifier() -> MagicMock:
    mock = MagicMock()
    mock.notify.return_value = True
    return mock


@pytest_asyncio.fixture
async def engine(tmp_path):
    # SQLite drops FOR UPDATE, so row-lock serialization of concurrent orders
    # is only exercised against PostgreSQL
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/bakeflow.db", echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


class FakeRedis:
    """Dict-backed stand-in for the handful of redis.asyncio calls the cache makes."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.expiry: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


class Seeder:
    """Builds domain rows in the test session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def merchant(
        self,
        name: str = "Corner Cafe",
        credit_limit: Decimal = Decimal("10000.00"),
        status: MerchantStatus = MerchantStatus.ACTIVE,
        phone: str | None = "+15550001000",
    ) -> Merchant:
        merchant = Merchant(
            business_name=name,
            location_address="12 Market Street",
            contact_person_name="Dana",
            contact_phone=phone,
            credit_limit=credit_limit,
            account_status=status,
        )
        self.db.add(merchant)
        await self.db.flush()
        return merchant

    async def inventory_item(
        self,
        name: str,
        cost: Decimal,
        quantity: Decimal = Decimal("1000"),
        unit: str = "kg",
    ) -> InventoryItem:
        item = InventoryItem(
            item_name=name,
            unit_of_measurement=unit,
            cost_per_unit=cost,
            current_quantity=quantity,
            minimum_stock_level=Decimal("0"),
        )
        self.db.add(item)
        await self.db.flush()
        return item

    async def recipe(
        self,
        name: str,
        cost_per_unit: Decimal = Decimal("1.00"),
        ingredients: list[tuple[InventoryItem, Decimal]] | None = None,
    ) -> Recipe:
        recipe = Recipe(
            recipe_name=name,
            cost_per_unit=cost_per_unit,
            shelf_life_days=3,
            active_status=True,
            ingredients=[
                RecipeIngredient(inventory_item=item, quantity_required=quantity)
                for item, quantity in (ingredients or [])
            ],
        )
        self.db.add(recipe)
        await self.db.flush()
        return recipe

    async def user(
        self,
        name: str,
        role: StaffRole,
        department: Department | None = None,
        phone: str | None = None,
        status: UserStatus = UserStatus.ACTIVE,
        user_id: uuid.UUID | None = None,
    ) -> User:
        user = User(
            id=user_id or uuid.uuid4(),
            name=name,
            phone=phone,
            role=role,
            department=department,
            status=status,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def production_team(self) -> dict[str, User]:
        return {
            "baker": await self.user(
                "Ben Baker", StaffRole.BAKER, Department.PRODUCTION, phone="+15550002001"
            ),
            "inspector": await self.user(
                "Quinn Inspector",
                StaffRole.QUALITY_INSPECTOR,
                Department.QUALITY_CONTROL,
                phone="+15550002002",
            ),
            "packer": await self.user(
                "Pat Packer", StaffRole.PACKER, Department.PACKAGING, phone="+15550002003"
            ),
        }

    async def workflow(
        self,
        workflow_type: WorkflowType = WorkflowType.STANDARD,
        steps: list[dict] | None = None,
        duration: int = 120,
        active: bool = True,
        name: str | None = None,
    ) -> Workflow:
        workflow = Workflow(
            workflow_name=name or f"{workflow_type.value.title()} production",
            workflow_steps=steps if steps is not None else list(STANDARD_STEPS),
            estimated_total_duration_minutes=duration,
            workflow_type=workflow_type,
            active_status=active,
        )
        self.db.add(workflow)
        await self.db.flush()
        return workflow

    async def tracking(
        self,
        merchant: Merchant,
        recipe: Recipe,
        remaining: Decimal,
        expiration_date: date,
        delivered_days_ago: int = 1,
        status: TrackingStatus = TrackingStatus.FRESH,
        collection_required: bool = False,
    ) -> MerchantProductTracking:
        row = MerchantProductTracking(
            merchant_id=merchant.id,
            recipe_id=recipe.id,
            quantity_delivered=remaining,
            delivery_date=datetime.now(UTC) - timedelta(days=delivered_days_ago),
            expiration_date=expiration_date,
            current_estimated_quantity=remaining,
            status=status,
            collection_required=collection_required,
        )
        self.db.add(row)
        await self.db.flush()
        return row


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest_asyncio.fixture
async def bakery(seed, db):
    """A small catalog: flour, sugar and butter feeding a cake and a croissant.

    Cake base cost is 2.00 * 0.5 + 1.00 * 0.25 = 1.25 per unit.
    Croissant base cost is 8.00 * 0.1 + 2.00 * 0.05 = 0.90 per unit.
    """
    flour = await seed.inventory_item("Flour", Decimal("2.00"), Decimal("100"))
    sugar = await seed.inventory_item("Sugar", Decimal("1.00"), Decimal("100"))
    butter = await seed.inventory_item("Butter", Decimal("8.00"), Decimal("2"))
    cake = await seed.recipe(
        "Cake",
        cost_per_unit=Decimal("4.00"),
        ingredients=[(flour, Decimal("0.5")), (sugar, Decimal("0.25"))],
    )
    croissant = await seed.recipe(
        "Croissant",
        cost_per_unit=Decimal("1.50"),
        ingredients=[(butter, Decimal("0.1")), (flour, Decimal("0.05"))],
    )
    merchant = await seed.merchant()
    await db.commit()
    return {
        "flour": flour,
        "sugar": sugar,
        "butter": butter,
        "cake": cake,
        "croissant": croissant,
        "merchant": merchant,
    }
