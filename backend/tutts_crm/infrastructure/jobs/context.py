"""
CONTEXTO DE EXECUÇÃO DOS JOBS
=============================

Tudo que uma execução precisa, montado uma vez e passado adiante:
sessão do banco, settings, clientes da Tutts e do BI, loader das planilhas e o
"agora" da execução (amostrado UMA vez, todas as comparações de dia
usam o mesmo valor).
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import AsyncIterator, Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from tutts_crm.config import Settings, get_settings
from tutts_crm.domain.entities import utcnow
from tutts_crm.infrastructure.data_sources import SpreadsheetSnapshotLoader
from tutts_crm.infrastructure.services.bi_service import BIOperationClient
from tutts_crm.infrastructure.services.tutts_service import TuttsStatusClient


@dataclass
class JobContext:
    session: AsyncSession
    settings: Settings
    oracle: TuttsStatusClient
    loader: SpreadsheetSnapshotLoader
    bi: Optional[BIOperationClient] = None
    now: datetime = field(default_factory=utcnow)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.settings.timezone)

    @property
    def today(self) -> date:
        """Data de hoje no fuso da operação (America/Sao_Paulo)."""
        return self.now.astimezone(self.timezone).date()

    @property
    def cooldown_threshold(self) -> datetime:
        return self.now - timedelta(minutes=self.settings.enrichment_cooldown_minutes)

    @classmethod
    def build(
        cls,
        session: AsyncSession,
        http: httpx.AsyncClient,
        settings: Optional[Settings] = None,
        now: Optional[datetime] = None,
    ) -> "JobContext":
        settings = settings or get_settings()
        return cls(
            session=session,
            settings=settings,
            oracle=TuttsStatusClient(
                http,
                api_url=settings.tutts_api_url,
                token=settings.tutts_api_token,
                timeout=settings.oracle_timeout_seconds,
            ),
            loader=SpreadsheetSnapshotLoader(
                http,
                registry_url=settings.spreadsheet_registry_url,
                paid_traffic_url=settings.spreadsheet_paid_traffic_url,
                timeout=settings.spreadsheet_timeout_seconds,
            ),
            bi=BIOperationClient(
                http,
                api_url=settings.bi_api_url,
                timeout=settings.bi_timeout_seconds,
            ),
            now=now or utcnow(),
        )


@asynccontextmanager
async def open_job_context(
    session: AsyncSession,
    settings: Optional[Settings] = None,
) -> AsyncIterator[JobContext]:
    """Abre o cliente HTTP da execução e fecha ao final."""
    async with httpx.AsyncClient() as http:
        yield JobContext.build(session, http, settings=settings)
