"""
ROTAS: LEADS
=============

Ações do atendente sobre o lead: assumir, mudar etapa, reativar IA,
finalizar e verificar status na Tutts.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from tutts_crm.api.dependencies import get_current_user, get_job_context
from tutts_crm.api.schemas.schemas import LeadResponse, StageUpdateRequest, StatusCheckRequest
from tutts_crm.application.services.lead_actions import (
    LeadPermissionError,
    change_stage,
    claim_lead,
    finalize_lead,
    reactivate_ai,
    verify_status,
)
from tutts_crm.domain.entities import Lead
from tutts_crm.infrastructure.jobs.context import JobContext
from tutts_crm.infrastructure.services.auth_service import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leads", tags=["Leads"])


async def _get_lead_or_404(ctx: JobContext, lead_id: int) -> Lead:
    lead = await ctx.session.get(Lead, lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead não encontrado")
    return lead


def lead_to_response(lead: Lead) -> dict:
    return LeadResponse.model_validate(lead).model_dump()


# ==========================================
# VERIFICAR STATUS NA TUTTS
# ==========================================

@router.post("/verificar-status")
async def verify_status_endpoint(
    payload: StatusCheckRequest,
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    results = await verify_status(
        ctx.session,
        ctx.oracle,
        payload.lead_ids,
        now=ctx.now,
        sleep=ctx.sleep,
    )
    return {
        "success": True,
        "resultados": results,
        "atualizados": sum(1 for r in results if r["atualizado"]),
    }


# ==========================================
# ASSUMIR ATENDIMENTO
# ==========================================

@router.post("/{lead_id}/assumir")
async def claim_lead_endpoint(
    lead_id: int,
    user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    await _get_lead_or_404(ctx, lead_id)

    result = await claim_lead(ctx.session, lead_id, user.reference, now=ctx.now)
    if not result.success:
        raise HTTPException(
            status_code=409,
            detail={"message": result.message, "owner_user_id": result.owner_user_id},
        )

    return {"success": True, "message": result.message, "lead": lead_to_response(result.lead)}


# ==========================================
# ETAPA / IA
# ==========================================

@router.post("/{lead_id}/stage")
async def change_stage_endpoint(
    lead_id: int,
    payload: StageUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    lead = await _get_lead_or_404(ctx, lead_id)
    try:
        await change_stage(ctx.session, lead, payload.stage, user, now=ctx.now)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LeadPermissionError:
        raise HTTPException(status_code=403, detail="Você não tem permissão para alterar este lead")

    return {"success": True, "lead": lead_to_response(lead)}


@router.post("/{lead_id}/reativar")
async def reactivate_ai_endpoint(
    lead_id: int,
    user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    lead = await _get_lead_or_404(ctx, lead_id)
    try:
        await reactivate_ai(ctx.session, lead, user, now=ctx.now)
    except LeadPermissionError:
        raise HTTPException(status_code=403, detail="Você não tem permissão para alterar este lead")
    return {"success": True, "lead": lead_to_response(lead)}


@router.post("/{lead_id}/finalizar")
async def finalize_lead_endpoint(
    lead_id: int,
    user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    lead = await _get_lead_or_404(ctx, lead_id)
    try:
        await finalize_lead(ctx.session, lead, user, now=ctx.now)
    except LeadPermissionError:
        raise HTTPException(status_code=403, detail="Você não tem permissão para alterar este lead")
    return {"success": True, "lead": lead_to_response(lead)}
