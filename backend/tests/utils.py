"""
Helpers compartilhados pelos testes: relógio fixo, fakes da Tutts e das
planilhas (httpx.MockTransport) e fábrica de leads.
"""

import csv
import io
import json
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import httpx
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from tutts_crm.domain.entities import Lead, FollowUp, FollowUpStatus, FollowUpType

# 15h UTC = 12h em São Paulo: "hoje" é o mesmo dia nos dois fusos
NOW = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 19)

TEST_SECRET = "segredo-de-teste"
CRON_SECRET = "cron-de-teste"
TUTTS_URL = "https://tutts.test/integracao"
REGISTRY_URL = "https://planilhas.test/principal.csv"
PAID_TRAFFIC_URL = "https://planilhas.test/tp.csv"
BI_URL = "https://bi.test"
BI_OPERATION_URL = f"{BI_URL}/api/crm/verificar-operacao"

REGISTRY_HEADER = ["Código", "Nome", "Telefone", "Cidade", "Data Ativação"]


def days_ago(days: int, hours: int = 0) -> datetime:
    return NOW - timedelta(days=days, hours=hours)


def to_csv(header: list[str], rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def make_token(user_id: int = 7, role: str = "user", name: str = "Atendente") -> str:
    return jwt.encode({"id": user_id, "role": role, "nome": name}, TEST_SECRET, algorithm="HS256")


class FakeBackends:
    """
    Tutts, BI e planilhas publicadas, atrás de um único MockTransport.

    tutts: telefone formatado -> "S" / "N" (o que não está aqui volta Erro)
    bi_operating: código -> em operação (o que não está aqui não volta)
    """

    def __init__(
        self,
        registry_csv: Optional[str] = None,
        paid_traffic_csv: Optional[str] = None,
        tutts: Optional[dict[str, str]] = None,
    ):
        self.registry_csv = registry_csv if registry_csv is not None else to_csv(REGISTRY_HEADER, [])
        self.paid_traffic_csv = paid_traffic_csv if paid_traffic_csv is not None else to_csv(["Telefone", "TP"], [])
        self.tutts = dict(tutts or {})
        self.tutts_calls: list[str] = []
        self.tutts_headers: list[httpx.Headers] = []
        self.sheet_status = 200
        self.bi_operating: dict[str, bool] = {}
        self.bi_requests: list[dict] = []
        self.bi_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)

        if url == TUTTS_URL:
            phone = json.loads(request.content)["celular"]
            self.tutts_calls.append(phone)
            self.tutts_headers.append(request.headers)
            flag = self.tutts.get(phone)
            if flag is None:
                return httpx.Response(200, json={"Erro": "Nenhum profissional encontrado"})
            return httpx.Response(200, json={"Sucesso": [{"ativo": flag}]})

        if url == BI_OPERATION_URL:
            body = json.loads(request.content)
            self.bi_requests.append(body)
            if self.bi_status != 200:
                return httpx.Response(self.bi_status, text="indisponível")
            resultado = [
                {"cod_profissional": code, "em_operacao": operating, "dados": {"corridas": 3} if operating else None}
                for code, operating in self.bi_operating.items()
                if code in body["codigos"]
            ]
            return httpx.Response(200, json={"resultado": resultado})

        if url == REGISTRY_URL:
            return httpx.Response(self.sheet_status, text=self.registry_csv)

        if url == PAID_TRAFFIC_URL:
            return httpx.Response(self.sheet_status, text=self.paid_traffic_csv)

        return httpx.Response(404, text="not found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class SleepRecorder:
    """Substitui asyncio.sleep: só anota os intervalos pedidos."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


async def make_lead(session: AsyncSession, **fields) -> Lead:
    fields.setdefault("phone", "5571989170372@s.whatsapp.net")
    fields.setdefault("stage", "novo")
    fields.setdefault("created_at", NOW)
    fields.setdefault("updated_at", fields["created_at"])
    lead = Lead(**fields)
    session.add(lead)
    await session.flush()
    return lead


async def make_follow_up(session: AsyncSession, lead: Lead, **fields) -> FollowUp:
    fields.setdefault("scheduled_date", TODAY)
    fields.setdefault("reason", "Retorno")
    fields.setdefault("status", FollowUpStatus.PENDING.value)
    fields.setdefault("type", FollowUpType.MANUAL.value)
    fields.setdefault("sequence", 1)
    fields.setdefault("created_at", NOW)
    follow_up = FollowUp(lead_id=lead.id, **fields)
    session.add(follow_up)
    await session.flush()
    return follow_up
