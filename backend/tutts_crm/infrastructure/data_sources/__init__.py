"""Fontes de dados externas (planilhas exportadas)."""
from .interface import ProfessionalRecord, RegistrySnapshot
from .spreadsheet_loader import SpreadsheetSnapshotLoader, parse_csv, parse_br_date

__all__ = [
    "ProfessionalRecord",
    "RegistrySnapshot",
    "SpreadsheetSnapshotLoader",
    "parse_csv",
    "parse_br_date",
]
