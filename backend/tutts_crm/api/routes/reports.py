"""
ROTAS: RELATÓRIOS
=================

Ativados no período, cruzamento com o BI da operação e KPIs do funil.
Datas no formato YYYY-MM-DD; sem datas = mês corrente.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from tutts_crm.api.dependencies import get_current_user, get_job_context
from tutts_crm.api.schemas.schemas import ActivatedProfessionalResponse, OperationCheckRequest
from tutts_crm.application.services.reporting_service import (
    activated_professionals,
    analytics_summary,
    current_month,
    operation_status,
)
from tutts_crm.infrastructure.jobs.context import JobContext
from tutts_crm.infrastructure.services.auth_service import CurrentUser
from tutts_crm.infrastructure.services.bi_service import BIUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Relatórios"])


def _resolve_period(ctx: JobContext, start: Optional[date], end: Optional[date]) -> tuple[date, date]:
    month_start, month_end = current_month(ctx.today)
    start = start or month_start
    end = end or month_end
    if start > end:
        raise HTTPException(status_code=400, detail="dataInicio deve ser anterior a dataFim")
    return start, end


@router.get("/relatorios/ativados")
async def activated_report(
    data_inicio: Optional[date] = Query(None, alias="dataInicio"),
    data_fim: Optional[date] = Query(None, alias="dataFim"),
    regiao: Optional[str] = Query(None),
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    start, end = _resolve_period(ctx, data_inicio, data_fim)
    registry = await ctx.loader.load_registry()

    data = await activated_professionals(
        ctx.session, registry, start, end, ctx.timezone, region=regiao
    )
    return {
        "success": True,
        "periodo": {"inicio": start.isoformat(), "fim": end.isoformat()},
        "total": data["total"],
        "da_planilha": data["da_planilha"],
        "do_crm": data["do_crm"],
        "profissionais": [
            ActivatedProfessionalResponse.model_validate(p).model_dump()
            for p in data["profissionais"]
        ],
    }


@router.get("/verificar-operacao")
async def operation_report(
    dias: int = Query(30, ge=1, le=365),
    data_inicio: Optional[date] = Query(None, alias="dataInicio"),
    data_fim: Optional[date] = Query(None, alias="dataFim"),
    regiao: Optional[str] = Query(None),
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    """Ativados do período (planilha + CRM) e quais estão rodando segundo o BI."""
    start, end = _resolve_period(ctx, data_inicio, data_fim)
    registry = await ctx.loader.load_registry()

    data = await operation_status(
        ctx.session, registry, ctx.bi, start, end, ctx.timezone, region=regiao, days=dias
    )
    return {
        "success": True,
        "periodo_dias": dias,
        "filtros": {"inicio": start.isoformat(), "fim": end.isoformat(), "regiao": regiao},
        **data,
    }


@router.post("/verificar-operacao")
async def operation_check_by_codes(
    payload: OperationCheckRequest,
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    try:
        data = await ctx.bi.fetch(payload.codigos, payload.dias)
    except BIUnavailableError as e:
        raise HTTPException(status_code=502, detail=f"Erro ao verificar operação no BI: {e}")
    return {"success": True, **data}


@router.get("/analytics")
async def analytics(
    data_inicio: Optional[date] = Query(None, alias="dataInicio"),
    data_fim: Optional[date] = Query(None, alias="dataFim"),
    regiao: Optional[str] = Query(None),
    _user: CurrentUser = Depends(get_current_user),
    ctx: JobContext = Depends(get_job_context),
):
    start, end = _resolve_period(ctx, data_inicio, data_fim)
    registry = await ctx.loader.load_registry()

    data = await analytics_summary(
        ctx.session, registry, start, end, ctx.timezone, region=regiao
    )
    return {"success": True, **data}
