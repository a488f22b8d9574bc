"""
SERVIÇO DE ENRIQUECIMENTO DE LEADS
==================================

Mantém os leads em dia com as fontes externas.

MODOS:
- cron:   lote com cota por execução e cooldown por lead
- evento: um lead específico, chamado logo após uma mudança nele

ETAPAS (por lead, nesta ordem):
1. Planilha principal: região, nome, código e data de ativação
   (primeira variação do telefone que casar vence). Planilha TP: tag
   de tráfego pago (só acrescenta, nunca substitui).
2. Grava as mudanças e atualiza a cópia em memória.
3. API Tutts: ativo -> finalizado, inativo -> qualificado.
   lead_morto -> finalizado = ressuscitado.
4. Intervalo fixo entre consultas à Tutts + teto de consultas por execução.
5. Carimba last_enriched_at em TODOS os leads processados (cron e evento),
   mudando algo ou não. É isso que faz a fila do cooldown girar.

Cada etapa de cada lead roda num SAVEPOINT: erro em um lead é desfeito,
contado e logado; o lote continua.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from tutts_crm.domain.entities import Lead, LeadStage, LeadRecordStatus
from tutts_crm.domain.services.phone import phone_variants
from tutts_crm.domain.services.stage_resolver import resolve_stage
from tutts_crm.infrastructure.data_sources import RegistrySnapshot
from .context import JobContext
from .follow_up_service import FollowUpAutomationService

logger = logging.getLogger(__name__)

MODE_CRON = "cron"
MODE_EVENT = "evento"

# Etapas que voltam para a fila depois do cooldown (finalizados não)
COOLDOWN_STAGES = (
    LeadStage.NEW.value,
    LeadStage.IN_PROGRESS.value,
    LeadStage.PROPOSAL.value,
    LeadStage.QUALIFIED.value,
    LeadStage.DEAD.value,
)


# =============================================================================
# RESULTADO DA EXECUÇÃO
# =============================================================================

@dataclass
class SpreadsheetStepStats:
    processed: int = 0
    updated: int = 0
    errors: int = 0


@dataclass
class OracleStepStats:
    checked: int = 0
    updated: int = 0
    errors: int = 0


@dataclass
class FollowUpStepStats:
    created: int = 0
    expired: int = 0
    resurrected: int = 0
    errors: int = 0


@dataclass
class EnrichmentRunResult:
    mode: str = MODE_CRON
    selected: int = 0
    spreadsheet: SpreadsheetStepStats = field(default_factory=SpreadsheetStepStats)
    oracle: OracleStepStats = field(default_factory=OracleStepStats)
    follow_ups: FollowUpStepStats = field(default_factory=FollowUpStepStats)
    elapsed_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "etapa1_planilha": {
                "processados": self.spreadsheet.processed,
                "atualizados": self.spreadsheet.updated,
                "erros": self.spreadsheet.errors,
            },
            "etapa2_tutts": {
                "verificados": self.oracle.checked,
                "atualizados": self.oracle.updated,
                "erros": self.oracle.errors,
            },
            "etapa3_followups": {
                "criados": self.follow_ups.created,
                "mortos": self.follow_ups.expired,
                "ressuscitados": self.follow_ups.resurrected,
                "erros": self.follow_ups.errors,
            },
            "selecionados": self.selected,
            "tempo_ms": self.elapsed_ms,
            "modo": self.mode,
        }


# =============================================================================
# SERVIÇO PRINCIPAL
# =============================================================================

class LeadEnrichmentService:
    """
    Reconciliação de leads com planilhas e API Tutts.

    Uma instância por execução: os contadores vivem no resultado.
    """

    def __init__(self, ctx: JobContext):
        self.ctx = ctx
        self.session = ctx.session
        self.settings = ctx.settings
        self.result = EnrichmentRunResult()
        self._oracle_calls = 0

    # =========================================================================
    # MODO CRON
    # =========================================================================

    async def run_batch(self) -> EnrichmentRunResult:
        started = time.monotonic()
        self.result = EnrichmentRunResult(mode=MODE_CRON)

        leads = await self._select_batch()
        self.result.selected = len(leads)
        logger.info(f"📊 Enriquecimento (cron): {len(leads)} leads selecionados", extra={"modo": MODE_CRON})

        if leads:
            lead_ids = [lead.id for lead in leads]
            registry, tags = await self._load_snapshots()

            for lead in leads:
                await self._process_lead(lead, registry, tags)

            await self._stamp_enriched(lead_ids)

        self.result.elapsed_ms = int((time.monotonic() - started) * 1000)
        return self.result

    async def _select_batch(self) -> list[Lead]:
        """
        Prioridade 1: nunca enriquecidos.
        Prioridade 2: cooldown vencido, mais antigos primeiro (sem finalizados).
        """
        quota = self.settings.enrichment_batch_size

        result = await self.session.execute(
            select(Lead)
            .where(Lead.status == LeadRecordStatus.ACTIVE.value)
            .where(Lead.last_enriched_at.is_(None))
            .order_by(Lead.id.asc())
            .limit(quota)
        )
        never_enriched = list(result.scalars().all())

        remaining = quota - len(never_enriched)
        stale: list[Lead] = []
        if remaining > 0:
            result = await self.session.execute(
                select(Lead)
                .where(Lead.status == LeadRecordStatus.ACTIVE.value)
                .where(Lead.stage.in_(COOLDOWN_STAGES))
                .where(Lead.last_enriched_at < self.ctx.cooldown_threshold)
                .order_by(Lead.last_enriched_at.asc())
                .limit(remaining)
            )
            stale = list(result.scalars().all())

        # Deduplica por id
        seen: set[int] = set()
        leads = []
        for lead in never_enriched + stale:
            if lead.id in seen:
                continue
            seen.add(lead.id)
            leads.append(lead)
        return leads

    async def _stamp_enriched(self, lead_ids: list[int]) -> None:
        """last_enriched_at = agora da execução (não mexe em updated_at)."""
        try:
            async with self.session.begin_nested():
                await self.session.execute(
                    update(Lead)
                    .where(Lead.id.in_(lead_ids))
                    .values(last_enriched_at=self.ctx.now)
                )
        except SQLAlchemyError as e:
            # Savepoint desfeito: as mudanças dos leads continuam valendo
            logger.error(f"❌ Erro ao marcar leads como enriquecidos {lead_ids}: {e}", exc_info=True)

    # =========================================================================
    # MODO EVENTO
    # =========================================================================

    async def run_single(self, lead_id: int) -> EnrichmentRunResult:
        """Etapas 1 a 3 para um lead + carimbo. Sem follow-ups."""
        started = time.monotonic()
        self.result = EnrichmentRunResult(mode=MODE_EVENT)

        lead = await self.session.get(Lead, lead_id)
        if lead is None or lead.status != LeadRecordStatus.ACTIVE.value:
            logger.warning(f"⚠️ Lead {lead_id} não encontrado ou arquivado, enriquecimento ignorado")
        else:
            self.result.selected = 1
            registry, tags = await self._load_snapshots()
            await self._process_lead(lead, registry, tags)
            await self._stamp_enriched([lead_id])

        self.result.elapsed_ms = int((time.monotonic() - started) * 1000)
        return self.result

    # =========================================================================
    # PROCESSA UM LEAD
    # =========================================================================

    async def _load_snapshots(self) -> tuple[RegistrySnapshot, Dict[str, str]]:
        registry = await self.ctx.loader.load_registry()
        tags = await self.ctx.loader.load_paid_traffic_tags()
        return registry, tags

    async def _process_lead(self, lead: Lead, registry: RegistrySnapshot, tags: Dict[str, str]) -> None:
        # Depois de um rollback o objeto expira: o id vem antes
        lead_id = lead.id

        if lead.phone:
            self.result.spreadsheet.processed += 1
            try:
                async with self.session.begin_nested():
                    await self._enrich_from_spreadsheet(lead, registry, tags)
            except Exception as e:
                self.result.spreadsheet.errors += 1
                logger.error(f"❌ [Etapa 1] Lead {lead_id}: {e}", exc_info=True, extra={"lead_id": lead_id, "etapa": 1})
                if not await self._reload(lead, lead_id):
                    return

        if self._should_check_oracle(lead):
            try:
                async with self.session.begin_nested():
                    await self._check_oracle(lead)
            except Exception as e:
                self.result.oracle.errors += 1
                logger.error(f"❌ [Etapa 2] Lead {lead_id}: {e}", exc_info=True, extra={"lead_id": lead_id, "etapa": 2})
                await self._reload(lead, lead_id)

    async def _reload(self, lead: Lead, lead_id: int) -> bool:
        """Recarrega o lead depois do rollback do savepoint."""
        try:
            await self.session.refresh(lead)
        except SQLAlchemyError as e:
            logger.error(f"❌ Lead {lead_id} não pôde ser recarregado: {e}", extra={"lead_id": lead_id})
            return False
        return True

    def _build_spreadsheet_update(
        self,
        lead: Lead,
        registry: RegistrySnapshot,
        tags: Dict[str, str],
    ) -> dict:
        """Só entra no update o que realmente mudou."""
        variants = phone_variants(lead.phone)
        changes: dict = {}

        record = registry.lookup(variants)
        if record:
            if record.region and record.region != lead.region:
                changes["region"] = record.region
            if record.name and record.name != lead.name:
                changes["name"] = record.name
            if record.code and record.code != lead.professional_code:
                changes["professional_code"] = record.code
            if record.activation_date and record.activation_date != lead.activation_date:
                changes["activation_date"] = record.activation_date

        for variant in variants:
            tag = tags.get(variant)
            if tag:
                current_tags = list(lead.tags or [])
                if tag not in current_tags:
                    changes["tags"] = current_tags + [tag]
                break

        return changes

    async def _enrich_from_spreadsheet(
        self,
        lead: Lead,
        registry: RegistrySnapshot,
        tags: Dict[str, str],
    ) -> None:
        changes = self._build_spreadsheet_update(lead, registry, tags)
        if not changes:
            return

        for attr, value in changes.items():
            setattr(lead, attr, value)
        lead.updated_at = self.ctx.now
        await self.session.flush()

        self.result.spreadsheet.updated += 1
        logger.info(f"📝 [Etapa 1] Lead {lead.id} enriquecido: {sorted(changes)}", extra={"lead_id": lead.id, "etapa": 1})

    def _should_check_oracle(self, lead: Lead) -> bool:
        if not lead.phone:
            return False
        if lead.pipeline_stage == LeadStage.ACTIVATED:
            return False
        if self._oracle_calls >= self.settings.oracle_calls_per_run:
            return False
        return True

    async def _check_oracle(self, lead: Lead) -> None:
        # Intervalo entre chamadas consecutivas à Tutts
        if self._oracle_calls > 0:
            await self.ctx.sleep(self.settings.oracle_delay_ms / 1000)
        self._oracle_calls += 1
        self.result.oracle.checked += 1

        oracle_result = await self.ctx.oracle.check(lead.phone)
        transition = resolve_stage(oracle_result, lead.stage)
        if transition is None:
            return

        logger.info(f"🔄 [Etapa 2] Lead {lead.id}: {lead.stage} → {transition.to_stage.value}", extra={"lead_id": lead.id, "etapa": 2})

        lead.stage = transition.to_stage.value
        lead.updated_at = self.ctx.now
        if transition.is_resurrection:
            lead.resurrected_at = self.ctx.now
            lead.resurrection_count = (lead.resurrection_count or 0) + 1

        await self.session.flush()
        self.result.oracle.updated += 1

        if transition.is_resurrection:
            self.result.follow_ups.resurrected += 1
            logger.info(f"🔥 Lead {lead.id} ressuscitado ({lead.resurrection_count}x)", extra={"lead_id": lead.id})


# =============================================================================
# ORQUESTRAÇÃO (cron completo ou evento)
# =============================================================================

async def run_enrichment(ctx: JobContext, lead_id: Optional[int] = None) -> EnrichmentRunResult:
    """
    Modo evento: só as etapas 1-3 do lead.
    Modo cron: lote + automação de follow-ups.
    """
    service = LeadEnrichmentService(ctx)

    if lead_id is not None:
        return await service.run_single(lead_id)

    started = time.monotonic()
    result = await service.run_batch()

    try:
        follow_up_result = await FollowUpAutomationService(ctx).run()
        result.follow_ups.created = follow_up_result.created
        result.follow_ups.expired = follow_up_result.expired
        result.follow_ups.errors = follow_up_result.errors
    except Exception as e:
        result.follow_ups.errors += 1
        logger.error(f"❌ Erro na automação de follow-ups: {e}", exc_info=True)

    result.elapsed_ms = int((time.monotonic() - started) * 1000)
    return result


# =============================================================================
# FUNÇÃO PARA O SCHEDULER
# =============================================================================

async def run_enrichment_job() -> dict:
    """Função que o scheduler chama a cada N minutos."""
    from tutts_crm.infrastructure.database import async_session
    from .context import open_job_context

    logger.info("=" * 60)
    logger.info("🔄 INICIANDO JOB DE ENRIQUECIMENTO")
    logger.info("=" * 60)

    result = EnrichmentRunResult(mode=MODE_CRON)
    try:
        async with async_session() as session:
            async with open_job_context(session) as ctx:
                result = await run_enrichment(ctx)
            await session.commit()
    except Exception as e:
        logger.error(f"❌ Erro crítico no job de enriquecimento: {e}", exc_info=True, extra={"job": "enrichment_job"})

    summary = result.to_dict()
    logger.info("=" * 60)
    logger.info("✅ JOB FINALIZADO")
    logger.info(f"   Planilha: {summary['etapa1_planilha']}")
    logger.info(f"   Tutts: {summary['etapa2_tutts']}")
    logger.info(f"   Follow-ups: {summary['etapa3_followups']}")
    logger.info(f"   Tempo: {summary['tempo_ms']}ms")
    logger.info("=" * 60)

    return summary
