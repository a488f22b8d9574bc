"""Serviços de infraestrutura (integrações externas e autenticação)."""
from .tutts_service import OracleResult, TuttsStatusClient
from .bi_service import BIOperationClient, BIUnavailableError, OperationStatus
from .auth_service import CurrentUser, decode_access_token, user_from_payload, user_reference

__all__ = [
    "OracleResult",
    "TuttsStatusClient",
    "BIOperationClient",
    "BIUnavailableError",
    "OperationStatus",
    "CurrentUser",
    "decode_access_token",
    "user_from_payload",
    "user_reference",
]
