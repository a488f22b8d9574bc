"""
BI DA TUTTS - PROFISSIONAIS EM OPERAÇÃO
=======================================

Pergunta ao BI quais profissionais (por código) rodaram nos últimos N dias.

ENDPOINT: POST {bi_api_url}/api/crm/verificar-operacao
BODY:     {"codigos": ["123", "456"], "dias": 30}
RESPOSTA: {"resultado": [{"cod_profissional": "123", "em_operacao": true, "dados": {...}}]}

Código que não volta no resultado = não está operando.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

OPERATION_PATH = "/api/crm/verificar-operacao"


class BIUnavailableError(Exception):
    """BI não configurado, fora do ar ou com resposta inválida."""


@dataclass
class OperationStatus:
    code: str
    in_operation: bool
    data: Optional[Any] = None


class BIOperationClient:
    def __init__(self, client: httpx.AsyncClient, api_url: Optional[str], timeout: float = 15.0):
        self.client = client
        self.api_url = api_url.rstrip("/") if api_url else None
        self.timeout = timeout

    async def fetch(self, codes: list[str], days: int) -> dict:
        """Resposta crua do BI. Levanta BIUnavailableError em qualquer falha."""
        if not self.api_url:
            raise BIUnavailableError("URL do BI não configurada")

        try:
            response = await self.client.post(
                f"{self.api_url}{OPERATION_PATH}",
                json={"codigos": codes, "dias": days},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"[BI] Erro na requisição: {type(e).__name__}: {e}")
            raise BIUnavailableError(str(e)) from e
        except ValueError as e:
            logger.warning("[BI] Resposta não é JSON")
            raise BIUnavailableError("Resposta inválida do BI") from e

        if not isinstance(data, dict):
            raise BIUnavailableError("Resposta inválida do BI")
        return data

    async def check_operation(self, codes: list[str], days: int) -> dict[str, OperationStatus]:
        data = await self.fetch(codes, days)

        statuses: dict[str, OperationStatus] = {}
        for item in data.get("resultado") or []:
            if not isinstance(item, dict) or item.get("cod_profissional") is None:
                continue
            code = str(item["cod_profissional"])
            statuses[code] = OperationStatus(
                code=code,
                in_operation=bool(item.get("em_operacao")),
                data=item.get("dados"),
            )

        logger.info(f"📈 [BI] {len(codes)} códigos consultados, {sum(s.in_operation for s in statuses.values())} em operação")
        return statuses
