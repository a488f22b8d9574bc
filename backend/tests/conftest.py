import os

from tests.utils import (
    BI_URL,
    CRON_SECRET,
    NOW,
    PAID_TRAFFIC_URL,
    REGISTRY_URL,
    TEST_SECRET,
    TUTTS_URL,
    FakeBackends,
    SleepRecorder,
    make_token,
)

# Precisa estar no ambiente antes de carregar as settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = TEST_SECRET
os.environ["CRON_SECRET"] = CRON_SECRET
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["TUTTS_API_URL"] = TUTTS_URL
os.environ["TUTTS_API_TOKEN"] = "token-tutts"
os.environ["SPREADSHEET_REGISTRY_URL"] = REGISTRY_URL
os.environ["SPREADSHEET_PAID_TRAFFIC_URL"] = PAID_TRAFFIC_URL
os.environ["BI_API_URL"] = BI_URL

from typing import AsyncGenerator

import httpx
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tutts_crm.config import get_settings
from tutts_crm.domain.entities import Base
from tutts_crm.infrastructure.jobs.context import JobContext


@pytest.fixture
async def engine():
    """
    Banco SQLite em memória novo para cada teste.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite não abre a transação sozinho: sem isso não há SAVEPOINT
    @event.listens_for(test_engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Fixture que fornece uma sessão de banco de dados limpa para cada teste.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return get_settings().model_copy(update={
        "enrichment_batch_size": 50,
        "oracle_calls_per_run": 50,
        "enrichment_cooldown_minutes": 30,
    })


@pytest.fixture
def backends() -> FakeBackends:
    return FakeBackends()


@pytest.fixture
async def http_client(backends) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with backends.client() as client:
        yield client


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def job_context(db_session, http_client, settings, sleeper) -> JobContext:
    ctx = JobContext.build(db_session, http_client, settings=settings, now=NOW)
    ctx.sleep = sleeper
    return ctx


@pytest.fixture
async def api_client(session_factory, http_client, settings, sleeper):
    """
    Cliente HTTP da API com banco, relógio e serviços externos trocados
    pelos de teste.
    """
    from fastapi import Depends

    from tutts_crm.api.dependencies import get_job_context
    from tutts_crm.api.main import app
    from tutts_crm.infrastructure.database import get_db

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_job_context(db: AsyncSession = Depends(get_db)) -> JobContext:
        ctx = JobContext.build(db, http_client, settings=settings, now=NOW)
        ctx.sleep = sleeper
        return ctx

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_job_context] = override_get_job_context

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {make_token()}"}
