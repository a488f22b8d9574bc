"""
RELATÓRIOS E ANALYTICS
======================

- Profissionais ativados no período (planilha + CRM, sem duplicar)
- Quais desses ativados estão rodando de fato (BI da operação)
- KPIs do funil
- Situação da fila de enriquecimento

Novos/qualificados contam por created_at; ativados e mortos por
updated_at; ressuscitados por resurrected_at.
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from tutts_crm.domain.entities import (
    Lead,
    LeadStage,
    LeadRecordStatus,
    InitiatedBy,
    NotStartedLead,
    as_utc,
)
from tutts_crm.domain.services.activation_merge import (
    SOURCE_CRM,
    SOURCE_SPREADSHEET,
    filter_spreadsheet_window,
    merge_activated,
)
from tutts_crm.infrastructure.data_sources import RegistrySnapshot
from tutts_crm.infrastructure.services.bi_service import BIOperationClient, BIUnavailableError

logger = logging.getLogger(__name__)

NO_REGION = "Sem região"


def window_bounds(start: date, end: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Período local [start 00:00, end 23:59:59.999999] convertido para UTC."""
    lower = datetime.combine(start, time.min, tzinfo=tz)
    upper = datetime.combine(end, time.max, tzinfo=tz)
    return as_utc(lower), as_utc(upper)


def current_month(today: date) -> tuple[date, date]:
    first = today.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return first, next_month - timedelta(days=1)


def _in_window(moment: Optional[datetime], lower: datetime, upper: datetime) -> bool:
    if moment is None:
        return False
    return lower <= as_utc(moment) <= upper


async def _activated_crm_leads(
    db: AsyncSession,
    lower: datetime,
    upper: datetime,
    region: Optional[str],
) -> list[Lead]:
    query = (
        select(Lead)
        .where(Lead.status == LeadRecordStatus.ACTIVE.value)
        .where(Lead.stage == LeadStage.ACTIVATED.value)
        .where(Lead.updated_at >= lower)
        .where(Lead.updated_at <= upper)
        .order_by(Lead.updated_at.desc())
    )
    if region:
        query = query.where(func.upper(Lead.region) == region.upper())
    result = await db.execute(query)
    return list(result.scalars().all())


# =============================================================================
# ATIVADOS NO PERÍODO
# =============================================================================

async def activated_professionals(
    db: AsyncSession,
    registry: RegistrySnapshot,
    start: date,
    end: date,
    tz: ZoneInfo,
    region: Optional[str] = None,
) -> dict:
    lower, upper = window_bounds(start, end, tz)

    spreadsheet = filter_spreadsheet_window(registry.records, start, end, region)
    crm = await _activated_crm_leads(db, lower, upper, region)
    merged = merge_activated(spreadsheet, crm)

    return {
        "total": len(merged),
        "da_planilha": sum(1 for p in merged if p.source == SOURCE_SPREADSHEET),
        "do_crm": sum(1 for p in merged if p.source == SOURCE_CRM),
        "profissionais": merged,
    }


# =============================================================================
# ATIVADOS x OPERAÇÃO (BI)
# =============================================================================

async def operation_status(
    db: AsyncSession,
    registry: RegistrySnapshot,
    bi: BIOperationClient,
    start: date,
    end: date,
    tz: ZoneInfo,
    region: Optional[str] = None,
    days: int = 30,
) -> dict:
    """
    Cruza os ativados do período (mesma lista deduplicada do relatório)
    com o BI. BI fora do ar não derruba o relatório: todos saem como
    não operando e bi_conectado=False.
    """
    activated = await activated_professionals(db, registry, start, end, tz, region=region)
    merged = activated["profissionais"]

    if not merged:
        return {
            "message": "Nenhum lead ativado no período",
            "total": 0,
            "em_operacao": 0,
            "nao_operando": 0,
            "taxa_conversao": 0.0,
            "leads": [],
            "bi_conectado": False,
        }

    connected = True
    try:
        statuses = await bi.check_operation([p.code for p in merged], days)
    except BIUnavailableError as e:
        logger.warning(f"⚠️ BI indisponível, operação não verificada: {e}")
        statuses = {}
        connected = False

    leads = []
    for professional in merged:
        status = statuses.get(professional.code)
        leads.append({
            "codigo": professional.code,
            "nome": professional.name,
            "telefone": professional.phone,
            "regiao": professional.region,
            "fonte": professional.source,
            "em_operacao": bool(status and status.in_operation),
            "bi_dados": status.data if status else None,
        })

    operating = sum(1 for lead in leads if lead["em_operacao"])
    return {
        "total": len(leads),
        "em_operacao": operating,
        "nao_operando": len(leads) - operating,
        "taxa_conversao": round(operating * 100 / len(leads), 1),
        "leads": leads,
        "bi_conectado": connected,
    }


# =============================================================================
# KPIs
# =============================================================================

def _rate(part: int, total: int) -> int:
    return round(part * 100 / total) if total else 0


async def analytics_summary(
    db: AsyncSession,
    registry: RegistrySnapshot,
    start: date,
    end: date,
    tz: ZoneInfo,
    region: Optional[str] = None,
) -> dict:
    lower, upper = window_bounds(start, end, tz)
    region_key = region.upper() if region else None

    result = await db.execute(select(Lead).where(Lead.status == LeadRecordStatus.ACTIVE.value))
    leads = list(result.scalars().all())

    def in_region(lead: Lead) -> bool:
        return region_key is None or (lead.region or "").upper() == region_key

    entered = [lead for lead in leads if _in_window(lead.created_at, lower, upper) and in_region(lead)]
    dead = [
        lead for lead in leads
        if lead.stage == LeadStage.DEAD.value and _in_window(lead.updated_at, lower, upper) and in_region(lead)
    ]
    resurrected = [lead for lead in leads if _in_window(lead.resurrected_at, lower, upper) and in_region(lead)]
    activated_crm = [
        lead for lead in leads
        if lead.stage == LeadStage.ACTIVATED.value and _in_window(lead.updated_at, lower, upper) and in_region(lead)
    ]

    spreadsheet = filter_spreadsheet_window(registry.records, start, end, region)
    activated = merge_activated(spreadsheet, activated_crm, include_uncoded_crm=True)

    stage_counts = Counter(lead.pipeline_stage for lead in entered)
    not_started = await db.scalar(select(func.count()).select_from(NotStartedLead)) or 0

    by_initiator = {
        who.value: {"total": 0, "finalizados": 0, "mortos": 0}
        for who in (InitiatedBy.LEAD, InitiatedBy.HUMAN)
    }

    def initiator(lead: Lead) -> str:
        return InitiatedBy.HUMAN.value if lead.initiated_by == InitiatedBy.HUMAN.value else InitiatedBy.LEAD.value

    for lead in entered:
        by_initiator[initiator(lead)]["total"] += 1
    for lead in activated_crm:
        by_initiator[initiator(lead)]["finalizados"] += 1
    for lead in dead:
        by_initiator[initiator(lead)]["mortos"] += 1

    by_tag: Counter = Counter()
    for lead in entered:
        for tag in lead.tags or []:
            if tag and tag.strip():
                by_tag[tag.strip()] += 1

    total = len(entered)
    return {
        "kpis": {
            "total": total + not_started,
            "novos": stage_counts.get(LeadStage.NEW, 0),
            "qualificados": stage_counts.get(LeadStage.QUALIFIED, 0),
            "ativados": len(activated),
            "mortos": len(dead),
            "ressuscitados": len(resurrected),
            "nao_iniciados": not_started,
            "taxa_conversao": _rate(len(activated), total),
            "taxa_perda": _rate(len(dead), total),
        },
        "por_regiao": dict(Counter(p.region or NO_REGION for p in activated)),
        "por_iniciador": by_initiator,
        "por_tag": dict(by_tag),
        "periodo": {"inicio": start.isoformat(), "fim": end.isoformat(), "regiao": region},
    }


# =============================================================================
# FILA DE ENRIQUECIMENTO
# =============================================================================

async def enrichment_status(
    db: AsyncSession,
    now: datetime,
    cooldown_minutes: int,
    batch_size: int,
) -> dict:
    threshold = now - timedelta(minutes=cooldown_minutes)
    active = Lead.status == LeadRecordStatus.ACTIVE.value

    never = await db.scalar(
        select(func.count()).select_from(Lead).where(active, Lead.last_enriched_at.is_(None))
    )
    stale = await db.scalar(
        select(func.count()).select_from(Lead).where(active, Lead.last_enriched_at < threshold)
    )
    fresh = await db.scalar(
        select(func.count()).select_from(Lead).where(active, Lead.last_enriched_at >= threshold)
    )

    return {
        "nunca_enriquecidos": never or 0,
        "desatualizados": stale or 0,
        "atualizados": fresh or 0,
        "cooldown_minutos": cooldown_minutes,
        "limite_por_execucao": batch_size,
    }
