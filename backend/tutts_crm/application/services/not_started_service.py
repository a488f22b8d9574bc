"""
LEADS NÃO INICIADOS
===================

Profissionais que aparecem na lista exportada da Tutts mas nunca
chamaram no WhatsApp (não existem no CRM).

- Upload da lista: quem já está no CRM (novo/qualificado) é enriquecido;
  o resto vai para a quarentena (chave = telefone normalizado).
- Listagem: remove quem entrou no CRM desde o upload e, opcionalmente,
  consulta um lote na Tutts e remove quem já está ativo.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from tutts_crm.domain.entities import Lead, LeadStage, NotStartedLead
from tutts_crm.domain.services.phone import normalize_phone, phone_variants, whatsapp_link
from tutts_crm.domain.services.regions import region_for_phone, is_known_region
from tutts_crm.infrastructure.data_sources.spreadsheet_loader import parse_br_date
from tutts_crm.infrastructure.services.tutts_service import TuttsStatusClient

logger = logging.getLogger(__name__)

# Etapas em que um lead do CRM pode ser enriquecido pelo upload
ENRICHABLE_STAGES = (
    LeadStage.NEW.value,
    LeadStage.IN_PROGRESS.value,
    LeadStage.PROPOSAL.value,
    LeadStage.QUALIFIED.value,
)

# Se o telefone está no CRM nessas etapas, sai da lista de não iniciados
IN_CRM_STAGES = ENRICHABLE_STAGES + (LeadStage.ACTIVATED.value,)

DEFAULT_ORACLE_LIMIT = 10


@dataclass
class RosterEntry:
    phone: str
    code: Optional[str] = None
    name: Optional[str] = None
    activation_date: Optional[str] = None
    registration_date: Optional[str] = None


async def _phone_index(db: AsyncSession, stages: tuple) -> dict[str, Lead]:
    """Variação de telefone -> lead do CRM."""
    result = await db.execute(
        select(Lead).where(Lead.stage.in_(stages)).where(Lead.phone.isnot(None))
    )
    index: dict[str, Lead] = {}
    for lead in result.scalars().all():
        for variant in phone_variants(lead.phone):
            index.setdefault(variant, lead)
    return index


def _enrichment_changes(lead: Lead, entry: RosterEntry) -> dict:
    changes: dict = {}
    if entry.name and entry.name != lead.name:
        changes["name"] = entry.name
    if entry.code and entry.code != lead.professional_code:
        changes["professional_code"] = entry.code

    region = region_for_phone(entry.phone)
    if is_known_region(region) and region != lead.region:
        changes["region"] = region

    activation_date = parse_br_date(entry.activation_date)
    if activation_date and activation_date != lead.activation_date:
        changes["activation_date"] = activation_date
    return changes


# =============================================================================
# UPLOAD
# =============================================================================

async def ingest_roster(
    db: AsyncSession,
    entries: Iterable[RosterEntry],
    uploaded_by: Optional[str],
    now: datetime,
) -> dict:
    entries = list(entries)
    crm_index = await _phone_index(db, ENRICHABLE_STAGES)

    already_in_crm = 0
    enriched = 0
    to_insert: list[NotStartedLead] = []

    for entry in entries:
        normalized = normalize_phone(entry.phone)
        if not normalized:
            continue

        lead = next((crm_index[v] for v in phone_variants(entry.phone) if v in crm_index), None)

        if lead is not None:
            already_in_crm += 1
            changes = _enrichment_changes(lead, entry)
            if changes:
                for attr, value in changes.items():
                    setattr(lead, attr, value)
                lead.updated_at = now
                enriched += 1
                logger.info(f"📝 [NaoIniciados] Lead {lead.id} enriquecido: {sorted(changes)}")
            continue

        to_insert.append(NotStartedLead(
            professional_code=entry.code or "",
            name=entry.name or "",
            phone=entry.phone,
            normalized_phone=normalized,
            region=region_for_phone(entry.phone),
            uploaded_by=uploaded_by,
            registration_date=parse_br_date(entry.registration_date or entry.activation_date),
        ))

    # Ignora duplicados (já na tabela ou repetidos no próprio arquivo)
    inserted: list[NotStartedLead] = []
    duplicates = 0
    if to_insert:
        result = await db.execute(
            select(NotStartedLead.normalized_phone).where(
                NotStartedLead.normalized_phone.in_([n.normalized_phone for n in to_insert])
            )
        )
        existing = set(result.scalars().all())
        for record in to_insert:
            if record.normalized_phone in existing:
                duplicates += 1
                continue
            existing.add(record.normalized_phone)
            db.add(record)
            inserted.append(record)

    await db.flush()

    total = await db.scalar(select(func.count()).select_from(NotStartedLead))
    by_region = Counter(r.region for r in inserted)

    logger.info(
        f"📥 [NaoIniciados] {len(entries)} recebidos | {already_in_crm} já no CRM | "
        f"{enriched} enriquecidos | {len(inserted)} inseridos | {duplicates} duplicados"
    )

    return {
        "total_recebidos": len(entries),
        "ja_no_crm": already_in_crm,
        "enriquecidos": enriched,
        "novos_inseridos": len(inserted),
        "duplicados": duplicates,
        "total_na_lista": total or 0,
        "por_regiao": dict(by_region),
    }


# =============================================================================
# LISTAGEM
# =============================================================================

async def list_not_started(
    db: AsyncSession,
    oracle: Optional[TuttsStatusClient] = None,
    verify_oracle: bool = False,
    oracle_limit: int = DEFAULT_ORACLE_LIMIT,
    oracle_delay_seconds: float = 0.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> dict:
    result = await db.execute(
        select(NotStartedLead).order_by(NotStartedLead.created_at.desc(), NotStartedLead.id.desc())
    )
    records = list(result.scalars().all())

    crm_index = await _phone_index(db, IN_CRM_STAGES)

    removed_crm = [r for r in records if any(v in crm_index for v in phone_variants(r.normalized_phone))]
    removed_crm_ids = {r.id for r in removed_crm}
    candidates = [r for r in records if r.id not in removed_crm_ids]

    # Só um lote por vez na Tutts (API com limite de requisições)
    removed_oracle_ids: set[int] = set()
    if verify_oracle and oracle is not None and candidates:
        for i, record in enumerate(candidates[:oracle_limit]):
            if i > 0 and oracle_delay_seconds:
                await sleep(oracle_delay_seconds)
            status = await oracle.check(record.normalized_phone)
            if status.found and status.active:
                removed_oracle_ids.add(record.id)
                logger.info(f"✅ [NaoIniciados] {record.id} está ATIVO na Tutts")

    to_remove = removed_crm_ids | removed_oracle_ids
    if to_remove:
        await db.execute(delete(NotStartedLead).where(NotStartedLead.id.in_(to_remove)))
        await db.flush()

    remaining = [r for r in records if r.id not in to_remove]
    by_region = Counter(r.region for r in remaining if r.region)

    return {
        "leads": [
            {
                "id": r.id,
                "codigo": r.professional_code,
                "nome": r.name,
                "telefone": r.phone,
                "telefone_normalizado": r.normalized_phone,
                "regiao": r.region,
                "whatsapp_link": whatsapp_link(r.normalized_phone),
                "created_at": r.created_at,
                "data_cadastro": r.registration_date,
            }
            for r in remaining
        ],
        "total": len(remaining),
        "removidos": len(removed_crm_ids),
        "removidos_tutts": len(removed_oracle_ids),
        "por_regiao": dict(by_region),
        "regioes": sorted(by_region),
    }


async def remove_not_started(db: AsyncSession, record_id: int) -> bool:
    result = await db.execute(delete(NotStartedLead).where(NotStartedLead.id == record_id))
    return (result.rowcount or 0) > 0


async def clear_not_started(db: AsyncSession) -> int:
    result = await db.execute(delete(NotStartedLead))
    logger.info(f"🧹 [NaoIniciados] Lista limpa ({result.rowcount} registros)")
    return result.rowcount or 0
