"""
TESTES - RESOLUÇÃO DE ETAPA
===========================

Status da Tutts + etapa atual -> próxima etapa (ou nada).
"""

import pytest

from tutts_crm.domain.entities import LeadStage
from tutts_crm.domain.services.stage_resolver import resolve_stage
from tutts_crm.infrastructure.services.tutts_service import OracleResult

ACTIVE = OracleResult(found=True, active=True)
INACTIVE = OracleResult(found=True, active=False)
NOT_FOUND = OracleResult(found=False)


@pytest.mark.parametrize("current, result, expected", [
    ("novo", ACTIVE, LeadStage.ACTIVATED),
    ("novo", INACTIVE, LeadStage.QUALIFIED),
    ("qualificado", ACTIVE, LeadStage.ACTIVATED),
    ("lead_morto", INACTIVE, LeadStage.QUALIFIED),
    ("em_atendimento", ACTIVE, LeadStage.ACTIVATED),
    ("proposta", INACTIVE, LeadStage.QUALIFIED),
])
def test_transitions(current, result, expected):
    transition = resolve_stage(result, current)
    assert transition is not None
    assert transition.to_stage == expected


@pytest.mark.parametrize("current, result", [
    ("novo", NOT_FOUND),
    ("lead_morto", NOT_FOUND),
    ("qualificado", INACTIVE),
    ("finalizado", INACTIVE),
    ("finalizado", ACTIVE),
])
def test_no_transition(current, result):
    assert resolve_stage(result, current) is None


def test_resurrection_flag():
    transition = resolve_stage(ACTIVE, "lead_morto")
    assert transition.from_stage == LeadStage.DEAD
    assert transition.to_stage == LeadStage.ACTIVATED
    assert transition.is_resurrection

    assert not resolve_stage(ACTIVE, "novo").is_resurrection


def test_legacy_stage_is_read_as_new():
    transition = resolve_stage(INACTIVE, "em_atendimento")
    assert transition.from_stage == LeadStage.NEW
