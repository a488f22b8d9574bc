"""
BANCO DE DADOS
==============

PostgreSQL (asyncpg) em produção. Os testes usam SQLite em memória e
trocam get_db via dependency_overrides.
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tutts_crm.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(url: str) -> dict:
    options = {"echo": settings.debug, "pool_pre_ping": True}
    # Pool configurável só faz sentido no Postgres
    if url.startswith("postgresql"):
        options.update(pool_size=5, max_overflow=10, pool_recycle=1800)
    return options


engine = create_async_engine(settings.async_database_url, **_engine_options(settings.async_database_url))

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency do FastAPI: uma sessão por requisição.

    Commit no fim da requisição; qualquer exceção desfaz tudo.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_db(session: AsyncSession) -> None:
    """Levanta exceção se o banco não responde."""
    await session.execute(text("SELECT 1"))


async def init_db() -> None:
    """Cria as tabelas que ainda não existem (leads, follow_ups, not_started_leads)."""
    from tutts_crm.domain.entities import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"🗄️ Tabelas verificadas: {', '.join(sorted(Base.metadata.tables))}")
