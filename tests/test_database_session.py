"""Tests for the get_db session generator."""

import pytest
from sqlalchemy import func, select

from bakeflow.database import session as session_module
from bakeflow.models.merchant import Merchant


async def _count_merchants(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(Merchant.id)))).scalar_one()


class TestGetDb:
    @pytest.mark.asyncio
    async def test_commits_when_the_caller_finishes(self, session_factory, monkeypatch):
        monkeypatch.setattr(session_module, "async_session", session_factory)

        gen = session_module.get_db()
        session = await gen.__anext__()
        session.add(Merchant(business_name="Dockside Deli", location_address="Pier 4"))
        with pytest.raises(StopAsyncIteration):
            await gen.__anext__()

        assert await _count_merchants(session_factory) == 1

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises_on_error(self, session_factory, monkeypatch):
        monkeypatch.setattr(session_module, "async_session", session_factory)

        gen = session_module.get_db()
        session = await gen.__anext__()
        session.add(Merchant(business_name="Dockside Deli", location_address="Pier 4"))
        await session.flush()
        with pytest.raises(RuntimeError, match="handler failed"):
            await gen.athrow(RuntimeError("handler failed"))

        assert await _count_merchants(session_factory) == 0
