# backend/tutts_crm/domain/entities/lead.py

import uuid
from datetime import date, datetime
from typing import Optional, List
from sqlalchemy import String, Integer, Date, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow
from .enums import LeadStage, LeadRecordStatus


class Lead(Base):
    __tablename__ = "leads"

    # ===============================
    # IDENTIDADE
    # ===============================
    id: Mapped[int] = mapped_column(primary_key=True)
    uuid: Mapped[str] = mapped_column(
        String(36), unique=True, default=lambda: str(uuid.uuid4())
    )

    # ===============================
    # DADOS DO LEAD
    # ===============================
    phone: Mapped[Optional[str]] = mapped_column(String(50), index=True)  # pode vir como JID do WhatsApp
    name: Mapped[Optional[str]] = mapped_column(String(255))
    region: Mapped[Optional[str]] = mapped_column(String(100))
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    initiated_by: Mapped[Optional[str]] = mapped_column(String(20))

    # ===============================
    # FUNIL
    # ===============================
    stage: Mapped[str] = mapped_column(String(30), default=LeadStage.NEW.value, index=True)
    status: Mapped[str] = mapped_column(String(20), default=LeadRecordStatus.ACTIVE.value, index=True)

    # ===============================
    # DADOS DA TUTTS / PLANILHA
    # ===============================
    professional_code: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    activation_date: Mapped[Optional[date]] = mapped_column(Date)

    # ===============================
    # ATENDIMENTO
    # ===============================
    owner_user_id: Mapped[Optional[str]] = mapped_column(String(36))
    ai_mode: Mapped[Optional[str]] = mapped_column(String(20))

    # ===============================
    # ENRIQUECIMENTO / RESSURREIÇÃO
    # ===============================
    last_enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    resurrected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    resurrection_count: Mapped[int] = mapped_column(Integer, default=0)

    # ===============================
    # TIMESTAMPS
    # ===============================
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    # Só muda em alterações de negócio (sem onupdate): o carimbo de
    # last_enriched_at não pode reiniciar a contagem de inatividade.
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # ===============================
    # RELACIONAMENTOS
    # ===============================
    follow_ups: Mapped[List["FollowUp"]] = relationship(
        back_populates="lead",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def pipeline_stage(self) -> LeadStage:
        """Etapa normalizada (em_atendimento/proposta contam como novo)."""
        return LeadStage.normalize(self.stage)

    def __repr__(self):
        return f"<Lead id={self.id} stage={self.stage} phone={self.phone}>"
