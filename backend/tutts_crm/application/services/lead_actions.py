"""
AÇÕES DO ATENDENTE SOBRE O LEAD
===============================

- Assumir atendimento (first-write-wins, atômico)
- Mudar etapa manualmente
- Reativar a IA / finalizar atendimento
- Verificar status na Tutts na hora (sem esperar o cron)
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from tutts_crm.domain.entities import Lead, LeadStage, AIMode, MANUAL_STAGES
from tutts_crm.domain.services.stage_resolver import resolve_stage
from tutts_crm.infrastructure.services.auth_service import CurrentUser
from tutts_crm.infrastructure.services.tutts_service import TuttsStatusClient

logger = logging.getLogger(__name__)

MAX_STATUS_CHECK_LEADS = 20
STATUS_CHECK_DELAY_SECONDS = 0.1


class LeadPermissionError(Exception):
    """Usuário não é dono do lead nem admin."""


@dataclass
class ClaimResult:
    success: bool
    message: str
    owner_user_id: Optional[str] = None
    lead: Optional[Lead] = None


# =============================================================================
# ASSUMIR ATENDIMENTO
# =============================================================================

async def claim_lead(db: AsyncSession, lead_id: int, user_ref: str, now: datetime) -> ClaimResult:
    """
    Um único UPDATE condicional: só grava se o lead está sem dono (ou já é
    do próprio usuário). rowcount 0 = outro agente chegou antes.
    """
    result = await db.execute(
        update(Lead)
        .where(Lead.id == lead_id)
        .where(or_(Lead.owner_user_id.is_(None), Lead.owner_user_id == user_ref))
        .values(
            owner_user_id=user_ref,
            ai_mode=AIMode.PAUSED.value,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        current = await db.execute(select(Lead.owner_user_id).where(Lead.id == lead_id))
        owner = current.scalar_one_or_none()
        logger.info(f"⛔ Lead {lead_id} já assumido por {owner}")
        return ClaimResult(
            success=False,
            message="Este atendimento já foi assumido por outro agente",
            owner_user_id=owner,
        )

    # O UPDATE não passa pela cópia da sessão: recarrega com o que foi gravado
    reloaded = await db.execute(
        select(Lead).where(Lead.id == lead_id).execution_options(populate_existing=True)
    )
    lead = reloaded.scalar_one()

    logger.info(f"🙋 Lead {lead_id} assumido por {user_ref}")
    return ClaimResult(
        success=True,
        message="Atendimento assumido com sucesso",
        owner_user_id=user_ref,
        lead=lead,
    )


# =============================================================================
# ETAPA / IA
# =============================================================================

def _ensure_can_change(lead: Lead, user: CurrentUser, allow_unowned: bool) -> None:
    if user.is_admin:
        return
    if lead.owner_user_id is None and allow_unowned:
        return
    if lead.owner_user_id != user.reference:
        raise LeadPermissionError(f"Usuário {user.id} não pode alterar o lead {lead.id}")


async def change_stage(
    db: AsyncSession,
    lead: Lead,
    stage: str,
    user: CurrentUser,
    now: datetime,
) -> Lead:
    """Mudança manual. Lead sem dono pode ser alterado por qualquer atendente."""
    try:
        target = LeadStage(stage)
    except ValueError:
        raise ValueError(f"Stage inválido: {stage}")
    if target not in MANUAL_STAGES:
        raise ValueError(f"Stage inválido: {stage}")

    _ensure_can_change(lead, user, allow_unowned=True)

    logger.info(f"✏️ Lead {lead.id}: {lead.stage} → {target.value} (usuário {user.id})")
    lead.stage = target.value
    lead.updated_at = now
    await db.flush()
    return lead


async def reactivate_ai(db: AsyncSession, lead: Lead, user: CurrentUser, now: datetime) -> Lead:
    _ensure_can_change(lead, user, allow_unowned=False)
    lead.ai_mode = AIMode.REACTIVATED.value
    lead.updated_at = now
    await db.flush()
    return lead


async def finalize_lead(db: AsyncSession, lead: Lead, user: CurrentUser, now: datetime) -> Lead:
    _ensure_can_change(lead, user, allow_unowned=False)
    lead.stage = LeadStage.ACTIVATED.value
    lead.ai_mode = AIMode.ACTIVE.value
    lead.updated_at = now
    await db.flush()
    return lead


# =============================================================================
# VERIFICAÇÃO IMEDIATA NA TUTTS
# =============================================================================

async def verify_status(
    db: AsyncSession,
    oracle: TuttsStatusClient,
    lead_ids: list,
    now: datetime,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[dict]:
    """
    Consulta a Tutts para até 20 leads e aplica a mesma regra de etapa
    do enriquecimento (inclusive ressurreição).
    """
    results = []
    calls = 0

    for raw_id in lead_ids[:MAX_STATUS_CHECK_LEADS]:
        row = {
            "lead_id": raw_id,
            "telefone": None,
            "status_tutts": "erro",
            "stage_anterior": "",
            "stage_novo": None,
            "atualizado": False,
        }

        try:
            lead_id = int(raw_id)
        except (TypeError, ValueError):
            results.append(row)
            continue

        lead = await db.get(Lead, lead_id)
        if lead is None:
            row["lead_id"] = lead_id
            results.append(row)
            continue

        row.update(lead_id=lead_id, telefone=lead.phone, stage_anterior=lead.stage)

        if lead.pipeline_stage == LeadStage.ACTIVATED or not lead.phone:
            row["status_tutts"] = "ativo" if lead.pipeline_stage == LeadStage.ACTIVATED else "nao_encontrado"
            results.append(row)
            continue

        if calls > 0:
            await sleep(STATUS_CHECK_DELAY_SECONDS)
        calls += 1

        try:
            async with db.begin_nested():
                oracle_result = await oracle.check(lead.phone)
                if oracle_result.found:
                    row["status_tutts"] = "ativo" if oracle_result.active else "inativo"
                else:
                    row["status_tutts"] = "nao_encontrado"

                transition = resolve_stage(oracle_result, lead.stage)
                if transition is not None:
                    lead.stage = transition.to_stage.value
                    lead.updated_at = now
                    if transition.is_resurrection:
                        lead.resurrected_at = now
                        lead.resurrection_count = (lead.resurrection_count or 0) + 1
                    await db.flush()
                    row["stage_novo"] = transition.to_stage.value
                    row["atualizado"] = True
                    logger.info(f"🔄 [Verificar Status] Lead {lead_id}: {row['stage_anterior']} → {transition.to_stage.value}")
        except Exception as e:
            row.update(status_tutts="erro", stage_novo=None, atualizado=False)
            logger.error(f"❌ [Verificar Status] Erro no lead {lead_id}: {e}", exc_info=True)

        results.append(row)

    return results
