from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from bakeflow.database.engine import async_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session, committing on success and rolling back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
