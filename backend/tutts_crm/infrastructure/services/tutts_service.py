"""
INTEGRAÇÃO TUTTS - STATUS DO PROFISSIONAL
=========================================

Consulta se um telefone pertence a um profissional cadastrado na Tutts
e se ele está ativo.

ENDPOINT: POST {tutts_api_url}
HEADERS:  Authorization: Bearer <token>, identificador: prof-status
BODY:     {"celular": "(71) 98917-0372"}

RESPOSTAS:
- {"Sucesso": [{"ativo": "S"}]}  -> encontrado, ativo
- {"Sucesso": [{"ativo": "N"}]}  -> encontrado, inativo
- {"Erro": "Nenhum profissional encontrado..."} -> essa variação não casou

Cada variação do telefone é uma chamada, em sequência; a primeira que
retorna Sucesso vence. Não há retry além da lista de variações: o
intervalo entre consultas é responsabilidade de quem chama.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from tutts_crm.domain.services.phone import display_variants

logger = logging.getLogger(__name__)

ROUTING_HEADER = "prof-status"

ERROR_TOKEN_MISSING = "Token da API Tutts não configurado"
ERROR_PHONE_MISSING = "Telefone não informado"
ERROR_NOT_FOUND = "Nenhum profissional encontrado com os dados informados"


@dataclass
class OracleResult:
    """Resultado da consulta. active=None quando não encontrado."""

    found: bool
    active: Optional[bool] = None
    raw: Optional[Any] = None
    error: Optional[str] = None
    matched_phone: Optional[str] = None  # qual variação funcionou


class TuttsStatusClient:
    """
    Cliente da API de status da Tutts.

    Uso:
        async with httpx.AsyncClient() as http:
            oracle = TuttsStatusClient(http, settings.tutts_api_url, settings.tutts_api_token)
            result = await oracle.check("5571989170372@s.whatsapp.net")
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str,
        token: Optional[str],
        timeout: float = 10.0,
    ):
        self.client = client
        self.api_url = api_url
        self.token = token
        self.timeout = timeout

    def _build_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
            "identificador": ROUTING_HEADER,
        }

    async def _query(self, phone: str) -> Optional[OracleResult]:
        """Uma chamada. Devolve OracleResult só em caso de Sucesso."""
        try:
            response = await self.client.post(
                self.api_url,
                json={"celular": phone},
                headers=self._build_headers(),
                timeout=self.timeout,
            )
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"[Tutts API] Erro na requisição para '{phone}': {type(e).__name__}: {e}")
            return None
        except ValueError:
            logger.warning(f"[Tutts API] Resposta inválida para '{phone}' (HTTP {response.status_code})")
            return None

        success = data.get("Sucesso") if isinstance(data, dict) else None
        if isinstance(success, list) and success and isinstance(success[0], dict):
            active_flag = str(success[0].get("ativo", "")).upper()
            return OracleResult(
                found=True,
                active=active_flag == "S",
                raw=data,
                matched_phone=phone,
            )

        if isinstance(data, dict) and data.get("Erro"):
            logger.debug(f"[Tutts API] '{phone}': {data['Erro']}")
        return None

    async def check(self, phone: Optional[str]) -> OracleResult:
        """Consulta o status tentando as variações do telefone (com e sem o 9)."""
        if not self.token:
            logger.error("[Tutts API] Token não configurado")
            return OracleResult(found=False, error=ERROR_TOKEN_MISSING)

        if not phone:
            return OracleResult(found=False, error=ERROR_PHONE_MISSING)

        variants = display_variants(phone)
        logger.debug(f"[Tutts API] Tentando {len(variants)} variações: {variants}")

        for variant in variants:
            result = await self._query(variant)
            if result is not None:
                logger.info(f"[Tutts API] ✅ Encontrado com '{variant}' -> ativo: {result.active}")
                return result

        return OracleResult(found=False, error=ERROR_NOT_FOUND)
