"""Base e helpers de data/hora para todos os modelos do banco."""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Classe base para todos os modelos."""
    pass


def utcnow() -> datetime:
    """Agora em UTC (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Garante datetime aware em UTC.

    Alguns drivers (ex: SQLite nos testes) devolvem datetimes sem tzinfo
    mesmo com DateTime(timezone=True); nesse caso assumimos UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
