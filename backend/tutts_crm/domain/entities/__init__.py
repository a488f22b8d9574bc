"""Entidades do domínio."""
from .base import Base, utcnow, as_utc
from .enums import (
    LeadStage,
    MANUAL_STAGES,
    LeadRecordStatus,
    AIMode,
    InitiatedBy,
    FollowUpStatus,
    FollowUpType,
    FollowUpReason,
    FollowUpSituation,
    UserRole,
    ADMIN_ROLES,
)
from .lead import Lead
from .follow_up import FollowUp
from .not_started_lead import NotStartedLead

__all__ = [
    # Base
    "Base",
    "utcnow",
    "as_utc",
    # Enums
    "LeadStage",
    "MANUAL_STAGES",
    "LeadRecordStatus",
    "AIMode",
    "InitiatedBy",
    "FollowUpStatus",
    "FollowUpType",
    "FollowUpReason",
    "FollowUpSituation",
    "UserRole",
    "ADMIN_ROLES",
    # Models
    "Lead",
    "FollowUp",
    "NotStartedLead",
]
