"""Profissionais cadastrados na Tutts que nunca falaram com o CRM."""

from datetime import date, datetime
from typing import Optional
from sqlalchemy import String, Date, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class NotStartedLead(Base):
    __tablename__ = "not_started_leads"

    id: Mapped[int] = mapped_column(primary_key=True)
    professional_code: Mapped[Optional[str]] = mapped_column(String(50))
    name: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(50))
    normalized_phone: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    region: Mapped[Optional[str]] = mapped_column(String(100))
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(36))
    registration_date: Mapped[Optional[date]] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
