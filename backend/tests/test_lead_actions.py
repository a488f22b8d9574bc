"""
TESTES - AÇÕES DO ATENDENTE
===========================

Assumir (primeiro que chega leva), mudar etapa, IA e verificação
imediata na Tutts.
"""

import pytest
from sqlalchemy import select, text

from tutts_crm.application.services.lead_actions import (
    LeadPermissionError,
    STATUS_CHECK_DELAY_SECONDS,
    change_stage,
    claim_lead,
    finalize_lead,
    reactivate_ai,
    verify_status,
)
from tutts_crm.domain.entities import AIMode, Lead, LeadStage, as_utc
from tutts_crm.infrastructure.services.auth_service import CurrentUser, user_reference
from tests.utils import NOW, days_ago, make_lead

ANA = CurrentUser(id=1, role="user", name="Ana")
BRUNO = CurrentUser(id=2, role="user", name="Bruno")
ADMIN = CurrentUser(id=3, role="admin_master", name="Chefe")


# =============================================================================
# TESTE 1: ASSUMIR ATENDIMENTO
# =============================================================================

@pytest.mark.asyncio
async def test_claim_first_write_wins(db_session):
    lead = await make_lead(db_session, created_at=days_ago(2))

    first = await claim_lead(db_session, lead.id, ANA.reference, now=NOW)
    second = await claim_lead(db_session, lead.id, BRUNO.reference, now=NOW)

    assert first.success is True
    assert second.success is False
    assert second.owner_user_id == ANA.reference
    # A cópia em memória reflete o que o UPDATE gravou
    assert first.lead is lead
    assert lead.owner_user_id == ANA.reference
    assert lead.ai_mode == AIMode.PAUSED.value
    assert as_utc(lead.updated_at) == NOW
    assert lead.stage == LeadStage.NEW.value


@pytest.mark.asyncio
async def test_claim_again_by_owner(db_session):
    lead = await make_lead(db_session)
    await claim_lead(db_session, lead.id, ANA.reference, now=NOW)
    again = await claim_lead(db_session, lead.id, ANA.reference, now=NOW)
    assert again.success is True


def test_user_reference_format():
    assert user_reference(123) == "00000000-0000-0000-0000-000000000123"


# =============================================================================
# TESTE 2: MUDANÇA DE ETAPA
# =============================================================================

@pytest.mark.asyncio
async def test_change_stage_on_unowned_lead(db_session):
    lead = await make_lead(db_session, created_at=days_ago(2))

    await change_stage(db_session, lead, "qualificado", BRUNO, now=NOW)

    assert lead.stage == LeadStage.QUALIFIED.value
    assert lead.updated_at == NOW


@pytest.mark.asyncio
@pytest.mark.parametrize("stage", ["proposta", "em_atendimento", "inexistente"])
async def test_change_stage_rejects_invalid(db_session, stage):
    lead = await make_lead(db_session)
    with pytest.raises(ValueError):
        await change_stage(db_session, lead, stage, ANA, now=NOW)


@pytest.mark.asyncio
async def test_change_stage_requires_owner_or_admin(db_session):
    lead = await make_lead(db_session, owner_user_id=ANA.reference)

    with pytest.raises(LeadPermissionError):
        await change_stage(db_session, lead, "lead_morto", BRUNO, now=NOW)

    await change_stage(db_session, lead, "lead_morto", ADMIN, now=NOW)
    assert lead.stage == LeadStage.DEAD.value


@pytest.mark.asyncio
async def test_reactivate_and_finalize(db_session):
    lead = await make_lead(db_session, owner_user_id=ANA.reference, ai_mode=AIMode.PAUSED.value)

    with pytest.raises(LeadPermissionError):
        await reactivate_ai(db_session, lead, BRUNO, now=NOW)

    await reactivate_ai(db_session, lead, ANA, now=NOW)
    assert lead.ai_mode == AIMode.REACTIVATED.value

    await finalize_lead(db_session, lead, ANA, now=NOW)
    assert lead.stage == LeadStage.ACTIVATED.value
    assert lead.ai_mode == AIMode.ACTIVE.value


# =============================================================================
# TESTE 3: VERIFICAR STATUS NA TUTTS
# =============================================================================

@pytest.mark.asyncio
async def test_verify_status(db_session, job_context, backends, sleeper):
    backends.tutts = {"(71) 90000-0001": "S", "(71) 90000-0002": "N"}
    dead = await make_lead(db_session, phone="71900000001", stage="lead_morto")
    new = await make_lead(db_session, phone="71900000002")
    done = await make_lead(db_session, phone="71900000003", stage="finalizado")

    rows = await verify_status(
        db_session,
        job_context.oracle,
        [dead.id, new.id, done.id, "abc", 999],
        now=NOW,
        sleep=sleeper,
    )

    by_id = {row["lead_id"]: row for row in rows}
    assert by_id[dead.id]["status_tutts"] == "ativo"
    assert by_id[dead.id]["stage_novo"] == "finalizado"
    assert dead.resurrection_count == 1
    assert dead.resurrected_at == NOW

    assert by_id[new.id]["status_tutts"] == "inativo"
    assert new.stage == LeadStage.QUALIFIED.value

    assert by_id[done.id]["status_tutts"] == "ativo"
    assert by_id[done.id]["atualizado"] is False

    assert by_id["abc"]["status_tutts"] == "erro"
    assert by_id[999]["status_tutts"] == "erro"

    # finalizado não consulta: só duas chamadas, um intervalo
    assert sleeper.calls == [STATUS_CHECK_DELAY_SECONDS]


@pytest.mark.asyncio
async def test_verify_status_limits_batch(db_session, job_context, sleeper):
    rows = await verify_status(db_session, job_context.oracle, list(range(1, 30)), now=NOW, sleep=sleeper)
    assert len(rows) == 20


@pytest.mark.asyncio
async def test_verify_status_database_error_in_one_lead(db_session, job_context, backends, sleeper):
    backends.tutts = {"(71) 90000-0001": "N", "(71) 90000-0002": "N"}
    broken = await make_lead(db_session, phone="71900000001")
    healthy = await make_lead(db_session, phone="71900000002")
    broken_id, healthy_id = broken.id, healthy.id
    await db_session.execute(text(
        "CREATE TRIGGER falha_stage BEFORE UPDATE OF stage ON leads "
        f"WHEN NEW.id = {broken_id} "
        "BEGIN SELECT RAISE(ABORT, 'falha simulada'); END"
    ))

    rows = await verify_status(db_session, job_context.oracle, [broken_id, healthy_id], now=NOW, sleep=sleeper)

    by_id = {row["lead_id"]: row for row in rows}
    assert by_id[broken_id]["status_tutts"] == "erro"
    assert by_id[broken_id]["atualizado"] is False
    assert by_id[healthy_id]["stage_novo"] == LeadStage.QUALIFIED.value

    stages = dict((await db_session.execute(select(Lead.id, Lead.stage))).all())
    assert stages == {broken_id: LeadStage.NEW.value, healthy_id: LeadStage.QUALIFIED.value}
