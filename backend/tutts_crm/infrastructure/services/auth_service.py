"""
SERVIÇO DE AUTENTICAÇÃO
========================

Valida os tokens JWT emitidos pela Tutts (mesmo segredo do servidor
Tutts). Este backend não emite tokens.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from tutts_crm.config import get_settings
from tutts_crm.domain.entities.enums import ADMIN_ROLES

logger = logging.getLogger(__name__)

# Configurações JWT
ALGORITHM = "HS256"


@dataclass(frozen=True)
class CurrentUser:
    """Identidade vinda do token da Tutts."""

    id: int
    role: str
    name: Optional[str] = None
    professional_code: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def reference(self) -> str:
        return user_reference(self.id)


def user_reference(user_id: int) -> str:
    """
    Id numérico da Tutts no formato UUID usado nas colunas de dono.

    123 -> '00000000-0000-0000-0000-000000000123'
    """
    return f"00000000-0000-0000-0000-{int(user_id):012d}"


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decodifica e valida token JWT.

    Returns:
        Dados do token ou None se inválido
    """
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.info("Token expirado")
        return None
    except JWTError as e:
        logger.info(f"Token inválido: {e}")
        return None


def user_from_payload(payload: dict) -> Optional[CurrentUser]:
    """Monta o CurrentUser a partir do payload (None se faltar id)."""
    raw_id = payload.get("id", payload.get("sub"))
    try:
        user_id = int(raw_id)
    except (TypeError, ValueError):
        return None

    return CurrentUser(
        id=user_id,
        role=str(payload.get("role") or "user"),
        name=payload.get("nome") or payload.get("name"),
        professional_code=payload.get("codProfissional"),
    )
