"""
FOLLOW-UP MANAGER
=================

Ciclo de vida dos follow-ups, compartilhado entre o agendador automático
e a criação manual pelo painel.

REGRA: no máximo UM follow-up pendente por lead. Criar sempre cancela o
pendente anterior antes de inserir (cancela-depois-cria).
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tutts_crm.domain.entities import (
    FollowUp,
    FollowUpStatus,
    FollowUpType,
    FollowUpSituation,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CRIAÇÃO
# =============================================================================

async def cancel_pending_follow_ups(db: AsyncSession, lead_id: int) -> int:
    """Cancela os pendentes do lead. Retorna quantos foram cancelados."""
    result = await db.execute(
        update(FollowUp)
        .where(FollowUp.lead_id == lead_id)
        .where(FollowUp.status == FollowUpStatus.PENDING.value)
        .values(status=FollowUpStatus.CANCELLED.value)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


async def next_sequence(db: AsyncSession, lead_id: int) -> int:
    result = await db.execute(
        select(func.max(FollowUp.sequence)).where(FollowUp.lead_id == lead_id)
    )
    return (result.scalar() or 0) + 1


async def schedule_follow_up(
    db: AsyncSession,
    lead_id: int,
    scheduled_date: date,
    reason: str,
    follow_up_type: FollowUpType = FollowUpType.MANUAL,
    notes: Optional[str] = None,
    created_by: Optional[str] = None,
) -> FollowUp:
    """
    Agenda um follow-up novo para o lead.

    1. Cancela qualquer pendente do lead
    2. sequência = maior sequência existente + 1
    3. Insere
    """
    cancelled = await cancel_pending_follow_ups(db, lead_id)
    if cancelled:
        logger.info(f"🔁 Lead {lead_id}: {cancelled} follow-up(s) pendente(s) cancelado(s)")

    follow_up = FollowUp(
        lead_id=lead_id,
        scheduled_date=scheduled_date,
        reason=reason,
        status=FollowUpStatus.PENDING.value,
        type=follow_up_type.value,
        sequence=await next_sequence(db, lead_id),
        notes=notes,
        created_by=created_by,
    )
    db.add(follow_up)
    await db.flush()

    logger.info(
        f"📅 Follow-up #{follow_up.sequence} ({follow_up.type}) agendado para lead {lead_id} "
        f"em {scheduled_date.isoformat()}: {reason}"
    )
    return follow_up


# =============================================================================
# AÇÕES SOBRE UM FOLLOW-UP
# =============================================================================

async def get_follow_up(db: AsyncSession, follow_up_id: int) -> Optional[FollowUp]:
    result = await db.execute(select(FollowUp).where(FollowUp.id == follow_up_id))
    return result.scalar_one_or_none()


async def complete_follow_up(
    db: AsyncSession,
    follow_up: FollowUp,
    now: datetime,
    notes: Optional[str] = None,
) -> FollowUp:
    follow_up.status = FollowUpStatus.DONE.value
    follow_up.completed_at = now
    if notes is not None:
        follow_up.notes = notes
    await db.flush()
    return follow_up


async def cancel_follow_up(db: AsyncSession, follow_up: FollowUp) -> FollowUp:
    follow_up.status = FollowUpStatus.CANCELLED.value
    await db.flush()
    return follow_up


async def reschedule_follow_up(
    db: AsyncSession,
    follow_up: FollowUp,
    scheduled_date: Optional[date],
    notes: Optional[str] = None,
) -> FollowUp:
    """Muda a data de um follow-up (volta para pendente)."""
    if scheduled_date is None:
        raise ValueError("data_agendada é obrigatória para reagendar")

    # Reagendar um concluído/cancelado reabre: mantém a regra de um pendente
    if follow_up.status != FollowUpStatus.PENDING.value:
        await cancel_pending_follow_ups(db, follow_up.lead_id)

    follow_up.scheduled_date = scheduled_date
    follow_up.status = FollowUpStatus.PENDING.value
    follow_up.completed_at = None
    if notes is not None:
        follow_up.notes = notes
    await db.flush()
    return follow_up


async def delete_follow_up(db: AsyncSession, follow_up: FollowUp) -> None:
    await db.delete(follow_up)
    await db.flush()


# =============================================================================
# LISTAGEM
# =============================================================================

def classify_situation(follow_up: FollowUp, today: date) -> str:
    """Pendente vira atrasado/hoje/futuro; os demais ficam com o próprio status."""
    if follow_up.status != FollowUpStatus.PENDING.value:
        return follow_up.status
    if follow_up.scheduled_date < today:
        return FollowUpSituation.OVERDUE.value
    if follow_up.scheduled_date == today:
        return FollowUpSituation.TODAY.value
    return FollowUpSituation.UPCOMING.value


async def list_follow_ups(
    db: AsyncSession,
    today: date,
    status: Optional[str] = None,
    lead_id: Optional[int] = None,
    situation: Optional[str] = None,
) -> dict:
    """
    Lista follow-ups com o lead carregado.

    Sem status informado, lista só os pendentes.
    """
    query = (
        select(FollowUp)
        .options(selectinload(FollowUp.lead))
        .where(FollowUp.status == (status or FollowUpStatus.PENDING.value))
        .order_by(FollowUp.scheduled_date.asc(), FollowUp.id.asc())
    )
    if lead_id is not None:
        query = query.where(FollowUp.lead_id == lead_id)

    result = await db.execute(query)
    follow_ups = result.scalars().all()

    classified = [(f, classify_situation(f, today)) for f in follow_ups]
    counts = {
        "atrasados": sum(1 for _, s in classified if s == FollowUpSituation.OVERDUE.value),
        "hoje": sum(1 for _, s in classified if s == FollowUpSituation.TODAY.value),
        "futuro": sum(1 for _, s in classified if s == FollowUpSituation.UPCOMING.value),
        "concluidos": sum(1 for f, _ in classified if f.status == FollowUpStatus.DONE.value),
        "total": sum(1 for f, _ in classified if f.status == FollowUpStatus.PENDING.value),
    }

    if situation:
        classified = [(f, s) for f, s in classified if s == situation]

    return {"items": classified, "counts": counts}
