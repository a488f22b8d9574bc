"""
ENRIQUECIMENTO (CRON / EVENTO)
==============================

POST: roda o enriquecimento
  - sem body / sem lead_id: modo cron (lote + follow-ups)
  - {"lead_id": 123}: modo evento (só aquele lead)
GET: situação da fila de enriquecimento
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Body

from tutts_crm.api.dependencies import get_current_user, get_job_context, require_cron_or_user
from tutts_crm.api.schemas.schemas import EnrichmentRequest
from tutts_crm.application.services.reporting_service import enrichment_status
from tutts_crm.domain.entities import Lead
from tutts_crm.infrastructure.jobs.context import JobContext
from tutts_crm.infrastructure.jobs.enrichment_service import MODE_EVENT, run_enrichment
from tutts_crm.infrastructure.services.auth_service import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron/enriquecimento", tags=["Enriquecimento"])


@router.post("")
async def run_enrichment_endpoint(
    payload: Optional[EnrichmentRequest] = Body(None),
    _caller: Optional[CurrentUser] = Depends(require_cron_or_user),
    ctx: JobContext = Depends(get_job_context),
):
    lead_id = payload.lead_id if payload else None

    if lead_id is not None and await ctx.session.get(Lead, lead_id) is None:
        raise HTTPException(status_code=404, detail="Lead não encontrado")

    result = await run_enrichment(ctx, lead_id=lead_id)
    summary = result.to_dict()

    if result.mode == MODE_EVENT:
        message = f"Lead enriquecido em {result.elapsed_ms}ms"
    elif result.selected == 0:
        message = "Nenhum lead precisando de enriquecimento"
    else:
        message = (
            f"CRON executado: {result.spreadsheet.updated} enriquecidos, "
            f"{result.oracle.updated} stages atualizados, "
            f"{result.follow_ups.created} follow-ups criados"
        )

    return {"success": True, "data": summary, "message": message}


@router.get("")
async def enrichment_queue_status(
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    data = await enrichment_status(
        ctx.session,
        now=ctx.now,
        cooldown_minutes=ctx.settings.enrichment_cooldown_minutes,
        batch_size=ctx.settings.enrichment_batch_size,
    )
    return {"success": True, "data": data}
