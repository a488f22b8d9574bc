"""
SCHEMAS DE VALIDAÇÃO
=====================

Define a estrutura de dados de entrada e saída da API.
Pydantic valida automaticamente os dados.
"""

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, ConfigDict


# ============================================
# LEAD
# ============================================

class LeadResponse(BaseModel):
    """Lead como o painel enxerga."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: str
    name: Optional[str] = None
    phone: Optional[str] = None
    stage: str
    status: str
    region: Optional[str] = None
    professional_code: Optional[str] = None
    activation_date: Optional[date] = None
    tags: list[str] = Field(default_factory=list)
    initiated_by: Optional[str] = None
    owner_user_id: Optional[str] = None
    ai_mode: Optional[str] = None
    resurrection_count: int = 0
    resurrected_at: Optional[datetime] = None
    last_enriched_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LeadSummary(BaseModel):
    """Resumo do lead para exibir junto do follow-up."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    phone: Optional[str] = None
    stage: str
    region: Optional[str] = None
    initiated_by: Optional[str] = None


class StageUpdateRequest(BaseModel):
    stage: str = Field(..., description="novo, qualificado, finalizado ou lead_morto")


class StatusCheckRequest(BaseModel):
    lead_ids: list = Field(..., min_length=1, description="Até 20 ids por requisição")


# ============================================
# FOLLOW-UP
# ============================================

class FollowUpCreate(BaseModel):
    """Criação manual pelo painel."""

    lead_id: int
    scheduled_date: date = Field(..., alias="data_agendada")
    reason: str = Field(..., min_length=1, alias="motivo")
    notes: Optional[str] = Field(None, alias="notas")

    model_config = ConfigDict(populate_by_name=True)


class FollowUpAction(BaseModel):
    """PATCH /followups/{id}"""

    action: Literal["concluir", "cancelar", "reagendar"] = Field(..., alias="acao")
    scheduled_date: Optional[date] = Field(None, alias="data_agendada")
    notes: Optional[str] = Field(None, alias="notas")

    model_config = ConfigDict(populate_by_name=True)


class FollowUpResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    lead_id: int
    scheduled_date: date
    reason: str
    status: str
    type: str
    sequence: int
    notes: Optional[str] = None
    created_by: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class FollowUpListItem(FollowUpResponse):
    situation: str
    lead: Optional[LeadSummary] = None


# ============================================
# ENRIQUECIMENTO
# ============================================

class EnrichmentRequest(BaseModel):
    """Sem lead_id = cron (lote). Com lead_id = evento (um lead)."""

    lead_id: Optional[int] = None


# ============================================
# LEADS NÃO INICIADOS
# ============================================

class RosterItem(BaseModel):
    codigo: Optional[str] = None
    nome: Optional[str] = None
    telefone: Optional[str] = None
    data_ativacao: Optional[str] = None
    data_cadastro: Optional[str] = None


class RosterUpload(BaseModel):
    leads: list[RosterItem]


# ============================================
# RELATÓRIOS
# ============================================

class ActivatedProfessionalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    name: str
    phone: str
    region: str
    source: str


class OperationCheckRequest(BaseModel):
    """Consulta direta ao BI por códigos de profissional."""

    codigos: list[str] = Field(..., min_length=1)
    dias: int = Field(30, ge=1, le=365)
