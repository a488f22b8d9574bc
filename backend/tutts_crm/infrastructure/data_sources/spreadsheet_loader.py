"""
SPREADSHEET SNAPSHOT LOADER
===========================

Carrega as planilhas exportadas em CSV (Google Sheets "publicar na web"):

- Planilha principal: profissionais cadastrados (código, nome, telefone,
  cidade, data de ativação).
- Planilha de tráfego pago (TP): telefone -> tag da campanha.

Falha de rede ou parse NUNCA derruba quem chamou: loga e devolve vazio.
"""

import csv
import io
import logging
import re
import unicodedata
from datetime import date
from typing import Dict, List, Optional

import httpx

from tutts_crm.domain.services.phone import normalize_phone
from .interface import ProfessionalRecord, RegistrySnapshot

logger = logging.getLogger(__name__)


# Sinônimos aceitos nos cabeçalhos (já normalizados: sem acento, minúsculo)
CODE_COLUMNS = ("codigo", "cod", "code")
NAME_COLUMNS = ("nome", "name")
PHONE_COLUMNS = ("telefone", "phone", "tel", "celular")
REGION_COLUMNS = ("cidade", "city", "regiao")
ACTIVATION_COLUMNS = ("data ativacao", "data_ativacao")
TAG_COLUMNS = ("tp", "tag")


# =============================================================================
# PARSE (funções puras)
# =============================================================================

def normalize_header(header: str) -> str:
    """'\\ufeffData Ativação' -> 'data ativacao'"""
    header = header.replace("\ufeff", "").strip().strip('"').strip()
    decomposed = unicodedata.normalize("NFD", header)
    without_accents = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")
    return without_accents.lower()


def parse_csv(text: str) -> List[Dict[str, str]]:
    """CSV com vírgula, campos entre aspas e BOM opcional."""
    if not text:
        return []

    text = text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text))

    try:
        header = next(reader)
    except StopIteration:
        return []

    columns = [normalize_header(h) for h in header]
    rows = []
    for values in reader:
        if not any(v.strip() for v in values):
            continue
        row = {}
        for i, column in enumerate(columns):
            row[column] = values[i].strip() if i < len(values) else ""
        rows.append(row)
    return rows


def _pick(row: Dict[str, str], columns: tuple) -> str:
    for column in columns:
        value = row.get(column)
        if value:
            return value
    return ""


def parse_br_date(value: Optional[str]) -> Optional[date]:
    """
    DD/MM/YYYY ou DD-MM-YY (ano com 2 dígitos vira 20xx).

    Data inválida é tratada como ausente.
    """
    if not value:
        return None

    parts = re.split(r"[/\-]", value.strip())
    if len(parts) != 3:
        return None

    day, month, year = parts
    if len(year) == 2:
        year = "20" + year

    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def parse_professional_row(row: Dict[str, str]) -> Optional[ProfessionalRecord]:
    """Converte uma linha crua em ProfessionalRecord (None se não tem código nem telefone)."""
    code = _pick(row, CODE_COLUMNS)
    phone = normalize_phone(_pick(row, PHONE_COLUMNS))

    if not code and not phone:
        return None

    return ProfessionalRecord(
        code=code,
        name=_pick(row, NAME_COLUMNS),
        phone=phone,
        region=_pick(row, REGION_COLUMNS).upper(),
        activation_date=parse_br_date(_pick(row, ACTIVATION_COLUMNS)),
    )


def build_registry(rows: List[Dict[str, str]]) -> RegistrySnapshot:
    by_phone: dict[str, ProfessionalRecord] = {}
    records: list[ProfessionalRecord] = []

    for row in rows:
        record = parse_professional_row(row)
        if record is None:
            continue
        records.append(record)
        if record.phone:
            by_phone[record.phone] = record

    return RegistrySnapshot(by_phone=by_phone, records=records)


def build_tag_map(rows: List[Dict[str, str]]) -> Dict[str, str]:
    tags: Dict[str, str] = {}
    for row in rows:
        phone = normalize_phone(_pick(row, PHONE_COLUMNS))
        tag = _pick(row, TAG_COLUMNS).strip()
        if phone and tag:
            tags[phone] = tag
    return tags


# =============================================================================
# LOADER
# =============================================================================

class SpreadsheetSnapshotLoader:
    """
    Busca e interpreta as planilhas.

    O httpx.AsyncClient é injetado (nos testes usamos MockTransport).
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        registry_url: Optional[str],
        paid_traffic_url: Optional[str],
        timeout: float = 30.0,
    ):
        self.client = client
        self.registry_url = registry_url
        self.paid_traffic_url = paid_traffic_url
        self.timeout = timeout

    async def _fetch_csv(self, url: Optional[str], label: str) -> Optional[str]:
        if not url:
            logger.warning(f"[Planilha] URL da planilha {label} não configurada")
            return None

        try:
            response = await self.client.get(
                url,
                headers={"Accept": "text/csv"},
                timeout=self.timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            logger.error(f"[Planilha] Erro ao buscar planilha {label}: {type(e).__name__}: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"[Planilha] {label} HTTP {response.status_code}: {response.text[:200]}")
            return None

        return response.text

    async def load_registry(self) -> RegistrySnapshot:
        """Planilha principal. Em caso de falha, snapshot vazio."""
        text = await self._fetch_csv(self.registry_url, "principal")
        if text is None:
            return RegistrySnapshot.empty()

        try:
            snapshot = build_registry(parse_csv(text))
        except (csv.Error, ValueError) as e:
            logger.error(f"[Planilha] Erro ao interpretar planilha principal: {e}", exc_info=True)
            return RegistrySnapshot.empty()

        logger.info(f"📄 Planilha principal: {len(snapshot.by_phone)} telefones, {len(snapshot.records)} linhas")
        return snapshot

    async def load_paid_traffic_tags(self) -> Dict[str, str]:
        """Planilha TP (telefone -> tag). Em caso de falha, mapa vazio."""
        text = await self._fetch_csv(self.paid_traffic_url, "TP")
        if text is None:
            return {}

        try:
            tags = build_tag_map(parse_csv(text))
        except (csv.Error, ValueError) as e:
            logger.error(f"[Planilha] Erro ao interpretar planilha TP: {e}", exc_info=True)
            return {}

        logger.info(f"🏷️ Planilha TP: {len(tags)} registros")
        return tags
