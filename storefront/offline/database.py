# storefront/offline/database.py
"""
Lokalna baza klienta (odpowiednik IndexedDB + Cache Storage przegladarki).
Jedna baza SQLite przez aiosqlite: kubelki cache, wpisy cache i kolejka operacji.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from storefront.utils.settings import OFFLINE_DB_URL

OfflineBase = declarative_base()


def create_offline_engine(url: str | None = None) -> AsyncEngine:
    url = url or OFFLINE_DB_URL
    if ":memory:" in url:
        return create_async_engine(url, poolclass=StaticPool)
    return create_async_engine(url)


async def init_offline_database(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # import modeli, zeby tabele byly w metadata
    from storefront.offline import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(OfflineBase.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False)
