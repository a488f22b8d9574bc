"""
ROTAS: LEADS NÃO INICIADOS
==========================

Upload da lista exportada da Tutts e acompanhamento de quem ainda não
chamou no WhatsApp.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from tutts_crm.api.dependencies import get_current_user, get_job_context
from tutts_crm.api.schemas.schemas import RosterUpload
from tutts_crm.application.services.not_started_service import (
    DEFAULT_ORACLE_LIMIT,
    RosterEntry,
    clear_not_started,
    ingest_roster,
    list_not_started,
    remove_not_started,
)
from tutts_crm.infrastructure.jobs.context import JobContext
from tutts_crm.infrastructure.services.auth_service import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leads-nao-iniciados", tags=["Leads não iniciados"])


@router.get("")
async def list_not_started_endpoint(
    verificar_tutts: bool = Query(False),
    limite_tutts: int = Query(DEFAULT_ORACLE_LIMIT, ge=1, le=50),
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    data = await list_not_started(
        ctx.session,
        oracle=ctx.oracle,
        verify_oracle=verificar_tutts,
        oracle_limit=limite_tutts,
        oracle_delay_seconds=ctx.settings.oracle_delay_ms / 1000,
        sleep=ctx.sleep,
    )
    return {"success": True, **data}


@router.post("")
async def upload_not_started(
    payload: RosterUpload,
    user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    entries = [
        RosterEntry(
            phone=item.telefone,
            code=item.codigo,
            name=item.nome,
            activation_date=item.data_ativacao,
            registration_date=item.data_cadastro,
        )
        for item in payload.leads
        if item.telefone
    ]
    if not entries:
        raise HTTPException(status_code=400, detail="Nenhum telefone válido na lista")

    data = await ingest_roster(ctx.session, entries, uploaded_by=user.reference, now=ctx.now)
    return {"success": True, **data}


@router.delete("")
async def delete_not_started(
    id: Optional[int] = Query(None),
    limpar_todos: bool = Query(False),
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    if limpar_todos:
        removed = await clear_not_started(ctx.session)
        return {"success": True, "removidos": removed}

    if id is None:
        raise HTTPException(status_code=400, detail="Informe id ou limpar_todos=true")

    if not await remove_not_started(ctx.session, id):
        raise HTTPException(status_code=404, detail="Registro não encontrado")
    return {"success": True, "removidos": 1}
