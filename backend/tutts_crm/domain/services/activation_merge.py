"""
MERGE DE PROFISSIONAIS ATIVADOS
===============================

Junta planilha + CRM sem duplicar profissional (chave = código só com
dígitos). A planilha entra primeiro e vence: o CRM só completa códigos
que a planilha não trouxe.

Não grava nada; os filtros de período/região são aplicados antes por
quem chama (filter_spreadsheet_window e a query do CRM).
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from tutts_crm.infrastructure.data_sources.interface import ProfessionalRecord

SOURCE_SPREADSHEET = "planilha"
SOURCE_CRM = "crm"


@dataclass(frozen=True)
class ActivatedProfessional:
    code: str
    name: str
    phone: str
    region: str
    source: str


def only_digits(value) -> str:
    return re.sub(r"\D", "", str(value or ""))


def filter_spreadsheet_window(
    records: Iterable[ProfessionalRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
    region: Optional[str] = None,
) -> list[ProfessionalRecord]:
    """Linhas com código, ativadas entre start e end (inclusive) e da região pedida."""
    region = region.upper() if region else None
    selected = []

    for record in records:
        if not record.code:
            continue
        if start and end:
            if record.activation_date is None:
                continue
            if record.activation_date < start or record.activation_date > end:
                continue
        if region and record.region != region:
            continue
        selected.append(record)

    return selected


def merge_activated(
    spreadsheet_records: Iterable[ProfessionalRecord],
    crm_leads: Iterable,
    include_uncoded_crm: bool = False,
) -> list[ActivatedProfessional]:
    """
    crm_leads: objetos com professional_code, name, phone e region (Lead).

    include_uncoded_crm=True mantém leads finalizados ainda sem código
    (usado nos KPIs, onde todo finalizado conta).
    """
    seen: set[str] = set()
    merged: list[ActivatedProfessional] = []

    # Planilha primeiro (mais assertiva)
    for record in spreadsheet_records:
        code = only_digits(record.code)
        if code and code not in seen:
            seen.add(code)
            merged.append(ActivatedProfessional(
                code=code,
                name=record.name,
                phone=record.phone,
                region=record.region,
                source=SOURCE_SPREADSHEET,
            ))

    # CRM depois (só se o código não veio da planilha)
    for lead in crm_leads:
        code = only_digits(lead.professional_code)
        if code:
            if code in seen:
                continue
            seen.add(code)
        elif not include_uncoded_crm:
            continue

        merged.append(ActivatedProfessional(
            code=code,
            name=lead.name or "",
            phone=lead.phone or "",
            region=(lead.region or "").upper(),
            source=SOURCE_CRM,
        ))

    return merged
