"""
TESTES - API
============

Rotas de ponta a ponta (ASGITransport), com banco em memória, relógio
fixo e Tutts/planilhas falsas.
"""

import pytest

from tutts_crm.infrastructure.services.auth_service import user_reference
from tests.utils import CRON_SECRET, REGISTRY_HEADER, days_ago, make_lead, make_token, to_csv

API = "/api/v1"


def bearer(user_id: int, role: str = "user") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id=user_id, role=role)}"}


# =============================================================================
# TESTE 1: HEALTH E AUTENTICAÇÃO
# =============================================================================

@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get(f"{API}/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == "ok"


@pytest.mark.asyncio
async def test_routes_require_token(api_client):
    response = await api_client.get(f"{API}/followups")
    assert response.status_code == 401

    response = await api_client.get(f"{API}/followups", headers={"Authorization": "Bearer invalido"})
    assert response.status_code == 401


# =============================================================================
# TESTE 2: CRON DE ENRIQUECIMENTO
# =============================================================================

@pytest.mark.asyncio
async def test_cron_requires_secret_or_user(api_client):
    response = await api_client.post(f"{API}/cron/enriquecimento")
    assert response.status_code == 401

    response = await api_client.post(f"{API}/cron/enriquecimento", headers={"x-cron-secret": "errado"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_cron_run(api_client, db_session, backends):
    backends.tutts = {"(71) 98917-0372": "S"}
    await make_lead(db_session)
    await db_session.commit()

    response = await api_client.post(f"{API}/cron/enriquecimento", headers={"x-cron-secret": CRON_SECRET})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["modo"] == "cron"
    assert data["selecionados"] == 1
    assert data["etapa2_tutts"]["atualizados"] == 1

    status = await api_client.get(f"{API}/cron/enriquecimento", headers=bearer(7))
    assert status.json()["data"]["nunca_enriquecidos"] == 0
    assert status.json()["data"]["atualizados"] == 1


@pytest.mark.asyncio
async def test_event_mode_unknown_lead(api_client, auth_headers):
    response = await api_client.post(
        f"{API}/cron/enriquecimento", json={"lead_id": 999}, headers=auth_headers
    )
    assert response.status_code == 404


# =============================================================================
# TESTE 3: FOLLOW-UPS
# =============================================================================

@pytest.mark.asyncio
async def test_follow_up_lifecycle(api_client, db_session, auth_headers):
    lead = await make_lead(db_session)
    await db_session.commit()

    created = await api_client.post(
        f"{API}/followups",
        json={"lead_id": lead.id, "data_agendada": "2026-10-21", "motivo": "Ligar de novo"},
        headers=auth_headers,
    )
    assert created.status_code == 201
    follow_up = created.json()["followup"]
    assert follow_up["created_by"] == user_reference(7)
    assert follow_up["type"] == "manual"

    listing = await api_client.get(f"{API}/followups", headers=auth_headers)
    body = listing.json()
    assert body["contadores"]["futuro"] == 1
    assert body["followups"][0]["situation"] == "futuro"
    assert body["followups"][0]["lead"]["id"] == lead.id

    bad = await api_client.patch(
        f"{API}/followups/{follow_up['id']}", json={"acao": "reagendar"}, headers=auth_headers
    )
    assert bad.status_code == 400

    done = await api_client.patch(
        f"{API}/followups/{follow_up['id']}", json={"acao": "concluir", "notas": "Falou comigo"}, headers=auth_headers
    )
    assert done.json()["followup"]["status"] == "concluido"

    deleted = await api_client.delete(f"{API}/followups/{follow_up['id']}", headers=auth_headers)
    assert deleted.status_code == 200

    missing = await api_client.patch(
        f"{API}/followups/{follow_up['id']}", json={"acao": "cancelar"}, headers=auth_headers
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_follow_up_automation_endpoint(api_client, db_session, auth_headers):
    await make_lead(db_session, created_at=days_ago(3))
    await db_session.commit()

    response = await api_client.post(f"{API}/followups/automacao", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["data"]["criados"] == 1


# =============================================================================
# TESTE 4: AÇÕES NO LEAD
# =============================================================================

@pytest.mark.asyncio
async def test_claim_conflict(api_client, db_session):
    lead = await make_lead(db_session)
    await db_session.commit()

    first = await api_client.post(f"{API}/leads/{lead.id}/assumir", headers=bearer(7))
    second = await api_client.post(f"{API}/leads/{lead.id}/assumir", headers=bearer(8))

    assert first.status_code == 200
    assert first.json()["lead"]["owner_user_id"] == user_reference(7)
    assert first.json()["lead"]["ai_mode"] == "pause"
    assert second.status_code == 409
    assert second.json()["detail"]["owner_user_id"] == user_reference(7)


@pytest.mark.asyncio
async def test_change_stage_rules(api_client, db_session):
    lead = await make_lead(db_session, owner_user_id=user_reference(7))
    await db_session.commit()

    invalid = await api_client.post(f"{API}/leads/{lead.id}/stage", json={"stage": "proposta"}, headers=bearer(7))
    assert invalid.status_code == 400

    forbidden = await api_client.post(f"{API}/leads/{lead.id}/stage", json={"stage": "qualificado"}, headers=bearer(8))
    assert forbidden.status_code == 403

    admin = await api_client.post(
        f"{API}/leads/{lead.id}/stage", json={"stage": "qualificado"}, headers=bearer(9, role="admin")
    )
    assert admin.status_code == 200
    assert admin.json()["lead"]["stage"] == "qualificado"

    missing = await api_client.post(f"{API}/leads/999/finalizar", headers=bearer(7))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_verify_status_endpoint(api_client, db_session, backends, auth_headers):
    backends.tutts = {"(71) 98917-0372": "N"}
    lead = await make_lead(db_session)
    await db_session.commit()

    response = await api_client.post(
        f"{API}/leads/verificar-status", json={"lead_ids": [lead.id]}, headers=auth_headers
    )

    body = response.json()
    assert body["atualizados"] == 1
    assert body["resultados"][0]["stage_novo"] == "qualificado"

    empty = await api_client.post(f"{API}/leads/verificar-status", json={"lead_ids": []}, headers=auth_headers)
    assert empty.status_code == 422


# =============================================================================
# TESTE 5: NÃO INICIADOS E RELATÓRIOS
# =============================================================================

@pytest.mark.asyncio
async def test_not_started_endpoints(api_client, auth_headers):
    upload = await api_client.post(
        f"{API}/leads-nao-iniciados",
        json={"leads": [{"telefone": "(81) 99999-0000", "nome": "Maria", "codigo": "456"}]},
        headers=auth_headers,
    )
    assert upload.json()["novos_inseridos"] == 1

    listing = await api_client.get(f"{API}/leads-nao-iniciados", headers=auth_headers)
    assert listing.json()["total"] == 1
    assert listing.json()["leads"][0]["regiao"] == "RECIFE"

    no_params = await api_client.delete(f"{API}/leads-nao-iniciados", headers=auth_headers)
    assert no_params.status_code == 400

    cleared = await api_client.delete(f"{API}/leads-nao-iniciados?limpar_todos=true", headers=auth_headers)
    assert cleared.json()["removidos"] == 1


@pytest.mark.asyncio
async def test_activated_report_defaults_to_current_month(api_client, backends, auth_headers):
    backends.registry_csv = to_csv(REGISTRY_HEADER, [
        ["123", "João", "71989170372", "Salvador", "01/10/2026"],
        ["456", "Maria", "81999990000", "Recife", "30/09/2026"],
    ])

    response = await api_client.get(f"{API}/relatorios/ativados", headers=auth_headers)

    body = response.json()
    assert body["periodo"] == {"inicio": "2026-10-01", "fim": "2026-10-31"}
    assert body["total"] == 1
    assert body["profissionais"][0]["source"] == "planilha"


@pytest.mark.asyncio
async def test_report_rejects_inverted_period(api_client, auth_headers):
    response = await api_client.get(
        f"{API}/analytics?dataInicio=2026-10-31&dataFim=2026-10-01", headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_analytics_endpoint(api_client, auth_headers):
    response = await api_client.get(f"{API}/analytics?regiao=SALVADOR", headers=auth_headers)
    body = response.json()
    assert body["success"] is True
    assert body["periodo"]["regiao"] == "SALVADOR"
    assert body["kpis"]["total"] == 0


@pytest.mark.asyncio
async def test_operation_report_endpoint(api_client, backends, auth_headers):
    backends.registry_csv = to_csv(REGISTRY_HEADER, [
        ["123", "João", "71989170372", "Salvador", "01/10/2026"],
    ])
    backends.bi_operating = {"123": True}

    response = await api_client.get(f"{API}/verificar-operacao?dias=7", headers=auth_headers)

    body = response.json()
    assert response.status_code == 200
    assert body["periodo_dias"] == 7
    assert body["bi_conectado"] is True
    assert body["em_operacao"] == 1
    assert body["leads"][0]["codigo"] == "123"
    assert backends.bi_requests == [{"codigos": ["123"], "dias": 7}]


@pytest.mark.asyncio
async def test_operation_check_by_codes(api_client, backends, auth_headers):
    backends.bi_operating = {"123": False}

    empty = await api_client.post(f"{API}/verificar-operacao", json={"codigos": []}, headers=auth_headers)
    assert empty.status_code == 422

    response = await api_client.post(f"{API}/verificar-operacao", json={"codigos": ["123"]}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["resultado"] == [{"cod_profissional": "123", "em_operacao": False, "dados": None}]

    backends.bi_status = 500
    down = await api_client.post(f"{API}/verificar-operacao", json={"codigos": ["123"]}, headers=auth_headers)
    assert down.status_code == 502
