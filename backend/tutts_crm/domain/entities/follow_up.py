"""
Follow-up agendado para um lead.

Regra: no máximo UM follow-up pendente por lead. Criar um novo sempre
cancela o pendente anterior (ver application/services/follow_up_manager.py).
"""

from datetime import date, datetime
from typing import Optional
from sqlalchemy import String, Integer, Date, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow
from .enums import FollowUpStatus, FollowUpType


class FollowUp(Base):
    __tablename__ = "follow_ups"

    id: Mapped[int] = mapped_column(primary_key=True)
    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"), index=True
    )

    scheduled_date: Mapped[date] = mapped_column(Date, index=True)
    reason: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default=FollowUpStatus.PENDING.value, index=True)
    type: Mapped[str] = mapped_column(String(20), default=FollowUpType.MANUAL.value)
    sequence: Mapped[int] = mapped_column(Integer, default=1)

    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(String(36))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    lead: Mapped["Lead"] = relationship(back_populates="follow_ups")

    def __repr__(self):
        return f"<FollowUp id={self.id} lead={self.lead_id} status={self.status} seq={self.sequence}>"
