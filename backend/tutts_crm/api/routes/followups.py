"""
ROTAS: FOLLOW-UPS
=================

Agenda de retornos dos atendentes.

- Listagem com situação (atrasado / hoje / futuro)
- Criação manual (cancela o pendente anterior do lead)
- Concluir / cancelar / reagendar / excluir
- Disparo manual da automação (só a fase de follow-ups, sem Tutts)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from tutts_crm.api.dependencies import get_current_user, get_job_context
from tutts_crm.api.schemas.schemas import (
    FollowUpAction,
    FollowUpCreate,
    FollowUpListItem,
    FollowUpResponse,
    LeadSummary,
)
from tutts_crm.application.services.follow_up_manager import (
    cancel_follow_up,
    classify_situation,
    complete_follow_up,
    delete_follow_up,
    get_follow_up,
    list_follow_ups,
    reschedule_follow_up,
    schedule_follow_up,
)
from tutts_crm.domain.entities import FollowUpStatus, FollowUpType, Lead
from tutts_crm.infrastructure.jobs.context import JobContext
from tutts_crm.infrastructure.jobs.follow_up_service import FollowUpAutomationService
from tutts_crm.infrastructure.services.auth_service import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/followups", tags=["Follow-ups"])


# ==========================================
# HELPERS
# ==========================================

def follow_up_to_item(follow_up, situation: str) -> dict:
    item = FollowUpListItem(
        **FollowUpResponse.model_validate(follow_up).model_dump(),
        situation=situation,
        lead=LeadSummary.model_validate(follow_up.lead) if follow_up.lead else None,
    )
    return item.model_dump()


async def _get_or_404(ctx: JobContext, follow_up_id: int):
    follow_up = await get_follow_up(ctx.session, follow_up_id)
    if follow_up is None:
        raise HTTPException(status_code=404, detail="Follow-up não encontrado")
    return follow_up


# ==========================================
# LISTAGEM
# ==========================================

@router.get("")
async def list_follow_ups_endpoint(
    status: str = Query(FollowUpStatus.PENDING.value),
    lead_id: Optional[int] = Query(None),
    situacao: Optional[str] = Query(None, description="atrasado, hoje ou futuro"),
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    data = await list_follow_ups(
        ctx.session,
        today=ctx.today,
        status=status,
        lead_id=lead_id,
        situation=situacao,
    )
    return {
        "success": True,
        "followups": [follow_up_to_item(f, s) for f, s in data["items"]],
        "contadores": data["counts"],
    }


# ==========================================
# CRIAÇÃO MANUAL
# ==========================================

@router.post("", status_code=201)
async def create_follow_up(
    payload: FollowUpCreate,
    user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    lead = await ctx.session.get(Lead, payload.lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead não encontrado")

    follow_up = await schedule_follow_up(
        ctx.session,
        lead_id=lead.id,
        scheduled_date=payload.scheduled_date,
        reason=payload.reason,
        follow_up_type=FollowUpType.MANUAL,
        notes=payload.notes,
        created_by=user.reference,
    )
    return {"success": True, "followup": FollowUpResponse.model_validate(follow_up).model_dump()}


# ==========================================
# AÇÕES
# ==========================================

@router.patch("/{follow_up_id}")
async def update_follow_up(
    follow_up_id: int,
    payload: FollowUpAction,
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    follow_up = await _get_or_404(ctx, follow_up_id)

    if payload.action == "concluir":
        await complete_follow_up(ctx.session, follow_up, now=ctx.now, notes=payload.notes)
    elif payload.action == "cancelar":
        await cancel_follow_up(ctx.session, follow_up)
    else:
        try:
            await reschedule_follow_up(
                ctx.session, follow_up, payload.scheduled_date, notes=payload.notes
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"📌 Follow-up {follow_up_id}: {payload.action}")
    return {
        "success": True,
        "followup": FollowUpResponse.model_validate(follow_up).model_dump(),
        "situacao": classify_situation(follow_up, ctx.today),
    }


@router.delete("/{follow_up_id}")
async def remove_follow_up(
    follow_up_id: int,
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    follow_up = await _get_or_404(ctx, follow_up_id)
    await delete_follow_up(ctx.session, follow_up)
    return {"success": True}


# ==========================================
# AUTOMAÇÃO
# ==========================================

@router.post("/automacao")
async def run_follow_up_automation(
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    """Roda só as regras de follow-up (sem planilha nem Tutts)."""
    result = await FollowUpAutomationService(ctx).run()
    return {"success": True, "data": result.to_dict()}
