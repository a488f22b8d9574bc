"""
SNAPSHOT DATA SOURCE TYPES
==========================

Registros tipados que saem das planilhas exportadas. Nenhum dict cru do
CSV passa daqui para a regra de negócio.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class ProfessionalRecord:
    """Linha da planilha de profissionais cadastrados/ativados."""

    code: str
    name: str
    phone: str  # forma canônica (ver domain/services/phone.py)
    region: str  # sempre maiúsculo
    activation_date: Optional[date] = None


@dataclass
class RegistrySnapshot:
    """Planilha principal carregada: índice por telefone + todas as linhas."""

    by_phone: dict[str, ProfessionalRecord]
    records: list[ProfessionalRecord]

    @classmethod
    def empty(cls) -> "RegistrySnapshot":
        return cls(by_phone={}, records=[])

    def lookup(self, variants: list[str]) -> Optional[ProfessionalRecord]:
        """Primeira variação encontrada vence."""
        for variant in variants:
            record = self.by_phone.get(variant)
            if record:
                return record
        return None
