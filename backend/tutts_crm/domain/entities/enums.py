"""Enums - valores fixos que se repetem no sistema."""

from enum import Enum
from typing import Optional


class LeadStage(str, Enum):
    """Etapa do lead no funil."""
    NEW = "novo"                    # Chegou pelo WhatsApp
    IN_PROGRESS = "em_atendimento"  # Legado (tratado como novo)
    QUALIFIED = "qualificado"       # Cadastrado na Tutts, ainda inativo
    PROPOSAL = "proposta"           # Legado (tratado como novo)
    ACTIVATED = "finalizado"        # Profissional ativo na Tutts
    DEAD = "lead_morto"             # Não respondeu ao follow-up

    @classmethod
    def normalize(cls, value: Optional[str]) -> "LeadStage":
        """Converte o valor gravado para uma das etapas do funil atual."""
        try:
            stage = cls(value)
        except ValueError:
            return cls.NEW
        if stage in (cls.IN_PROGRESS, cls.PROPOSAL):
            return cls.NEW
        return stage


# Etapas que o atendente pode escolher manualmente
MANUAL_STAGES = (
    LeadStage.NEW,
    LeadStage.QUALIFIED,
    LeadStage.ACTIVATED,
    LeadStage.DEAD,
)


class LeadRecordStatus(str, Enum):
    """Status do registro (arquivados ficam fora do enriquecimento)."""
    ACTIVE = "ativo"
    ARCHIVED = "arquivado"


class AIMode(str, Enum):
    """Estado da IA de atendimento no lead."""
    ACTIVE = "ativa"
    PAUSED = "pause"
    REACTIVATED = "reativada"


class InitiatedBy(str, Enum):
    """Quem iniciou a conversa."""
    LEAD = "lead"
    HUMAN = "humano"


class FollowUpStatus(str, Enum):
    """Status do follow-up."""
    PENDING = "pendente"
    DONE = "concluido"
    CANCELLED = "cancelado"


class FollowUpType(str, Enum):
    """Origem do follow-up."""
    MANUAL = "manual"
    AUTOMATIC = "automatico"


class FollowUpReason(str, Enum):
    """Motivos dos follow-ups automáticos."""
    REGISTRATION = "Formalizar cadastro no aplicativo"
    ACTIVATION = "Formalizar ativação"


class FollowUpSituation(str, Enum):
    """Situação de um follow-up pendente em relação a hoje."""
    OVERDUE = "atrasado"
    TODAY = "hoje"
    UPCOMING = "futuro"


class UserRole(str, Enum):
    """Perfis vindos do token da Tutts."""
    ADMIN = "admin"
    ADMIN_MASTER = "admin_master"
    ADMIN_FINANCE = "admin_financeiro"
    USER = "user"


ADMIN_ROLES = (
    UserRole.ADMIN.value,
    UserRole.ADMIN_MASTER.value,
    UserRole.ADMIN_FINANCE.value,
)
