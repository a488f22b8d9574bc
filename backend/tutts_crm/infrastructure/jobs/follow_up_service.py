"""
AUTOMAÇÃO DE FOLLOW-UPS (DECAIMENTO)
====================================

Roda só no modo cron, depois do enriquecimento.

REGRAS (por lead, olhando os follow-ups do mais novo para o mais antigo):
- A: pendente atrasado 2+ dias      -> lead_morto, pendente cancelado
- B: pendente dentro do prazo       -> nada a fazer
- C: novo parado 3+ dias            -> follow-up amanhã, "Formalizar cadastro no aplicativo"
- D: qualificado parado 3+ dias     -> follow-up amanhã, "Formalizar ativação"
- E: último concluído há 5+ dias    -> follow-up amanhã, motivo pela etapa atual

Leads mortos ficam de fora: quem traz de volta é a consulta à Tutts no
enriquecimento (ressurreição).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from tutts_crm.domain.entities import (
    Lead,
    FollowUp,
    LeadStage,
    LeadRecordStatus,
    FollowUpStatus,
    FollowUpType,
    FollowUpReason,
    as_utc,
)
from tutts_crm.application.services.follow_up_manager import schedule_follow_up
from .context import JobContext

logger = logging.getLogger(__name__)


# =============================================================================
# PRAZOS (em dias)
# =============================================================================

DEADLINES = {
    "new_without_change": 3,
    "qualified_without_activation": 3,
    "after_completed_follow_up": 5,
    "pending_overdue": 2,
}

REASON_BY_STAGE = {
    LeadStage.NEW: FollowUpReason.REGISTRATION,
    LeadStage.QUALIFIED: FollowUpReason.ACTIVATION,
}

AUTOMATION_STAGES = (
    LeadStage.NEW.value,
    LeadStage.IN_PROGRESS.value,
    LeadStage.PROPOSAL.value,
    LeadStage.QUALIFIED.value,
    LeadStage.DEAD.value,
)


@dataclass
class FollowUpRunResult:
    processed: int = 0
    created: int = 0
    expired: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return {
            "processados": self.processed,
            "criados": self.created,
            "mortos": self.expired,
            "pulados": self.skipped,
            "erros": self.errors,
        }


def _elapsed_days(now: datetime, moment: Optional[datetime]) -> Optional[int]:
    if moment is None:
        return None
    return (now - as_utc(moment)).days


class FollowUpAutomationService:
    """Aplica as regras A-E sobre os leads ativos do funil."""

    def __init__(self, ctx: JobContext):
        self.ctx = ctx
        self.session = ctx.session
        self.result = FollowUpRunResult()

    # =========================================================================
    # MÉTODO PRINCIPAL
    # =========================================================================

    async def run(self) -> FollowUpRunResult:
        self.result = FollowUpRunResult()

        result = await self.session.execute(
            select(Lead)
            .options(selectinload(Lead.follow_ups))
            .where(Lead.status == LeadRecordStatus.ACTIVE.value)
            .where(Lead.stage.in_(AUTOMATION_STAGES))
            .order_by(Lead.id.asc())
            .execution_options(populate_existing=True)
        )
        leads = result.scalars().all()

        logger.info(f"📋 Automação de follow-ups: {len(leads)} leads no funil")

        for lead in leads:
            lead_id = lead.id
            self.result.processed += 1
            try:
                # Savepoint por lead: uma falha não derruba os outros
                async with self.session.begin_nested():
                    await self._process_lead(lead)
            except Exception as e:
                self.result.errors += 1
                logger.error(f"❌ [Follow-up] Lead {lead_id}: {e}", exc_info=True, extra={"lead_id": lead_id})

        logger.info(
            f"✅ Follow-ups: {self.result.created} criados, {self.result.expired} mortos, "
            f"{self.result.errors} erros"
        )
        return self.result

    # =========================================================================
    # REGRAS POR LEAD
    # =========================================================================

    async def _process_lead(self, lead: Lead) -> None:
        stage = lead.pipeline_stage
        if stage == LeadStage.DEAD:
            self.result.skipped += 1
            return

        follow_ups = sorted(
            lead.follow_ups,
            key=lambda f: (as_utc(f.created_at), f.id),
            reverse=True,
        )
        pending = next((f for f in follow_ups if f.status == FollowUpStatus.PENDING.value), None)
        last_completed = next((f for f in follow_ups if f.status == FollowUpStatus.DONE.value), None)

        # Regras A e B
        if pending is not None:
            overdue_days = (self.ctx.today - pending.scheduled_date).days
            if overdue_days >= DEADLINES["pending_overdue"]:
                await self._expire(lead, pending, overdue_days)
            return

        reason = self._reason_to_create(lead, stage, last_completed)
        if reason is None:
            return

        await schedule_follow_up(
            self.session,
            lead_id=lead.id,
            scheduled_date=self.ctx.today + timedelta(days=1),
            reason=reason.value,
            follow_up_type=FollowUpType.AUTOMATIC,
        )
        self.result.created += 1

    def _reason_to_create(
        self,
        lead: Lead,
        stage: LeadStage,
        last_completed: Optional[FollowUp],
    ) -> Optional[FollowUpReason]:
        idle_days = _elapsed_days(self.ctx.now, lead.updated_at or lead.created_at)

        # Regra C
        if stage == LeadStage.NEW and idle_days is not None and idle_days >= DEADLINES["new_without_change"]:
            return FollowUpReason.REGISTRATION

        # Regra D
        if stage == LeadStage.QUALIFIED and idle_days is not None and idle_days >= DEADLINES["qualified_without_activation"]:
            return FollowUpReason.ACTIVATION

        # Regra E
        if last_completed is not None:
            since_completed = _elapsed_days(self.ctx.now, last_completed.completed_at)
            if since_completed is not None and since_completed >= DEADLINES["after_completed_follow_up"]:
                return REASON_BY_STAGE.get(stage)

        return None

    async def _expire(self, lead: Lead, pending: FollowUp, overdue_days: int) -> None:
        lead.stage = LeadStage.DEAD.value
        lead.updated_at = self.ctx.now
        pending.status = FollowUpStatus.CANCELLED.value
        await self.session.flush()

        self.result.expired += 1
        logger.info(f"💀 Lead {lead.id} → lead_morto (follow-up atrasado {overdue_days}d)", extra={"lead_id": lead.id})
