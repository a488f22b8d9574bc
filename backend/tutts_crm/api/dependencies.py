"""
DEPENDENCIES (Dependências)
============================

Funções que são injetadas nas rotas para validação e para montar os
clientes externos de cada requisição.
"""

from datetime import datetime
from typing import AsyncGenerator, Optional

import httpx
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from tutts_crm.config import Settings, get_settings
from tutts_crm.domain.entities import utcnow
from tutts_crm.infrastructure.database import get_db
from tutts_crm.infrastructure.jobs.context import JobContext
from tutts_crm.infrastructure.services.auth_service import (
    CurrentUser,
    decode_access_token,
    user_from_payload,
)

# Esquema de autenticação Bearer (a rota de cron também aceita x-cron-secret)
security = HTTPBearer(auto_error=False)


def _user_from_credentials(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[CurrentUser]:
    if credentials is None:
        return None
    payload = decode_access_token(credentials.credentials)
    if not payload:
        return None
    return user_from_payload(payload)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Valida o token da Tutts e retorna o usuário autenticado.

    Uso nas rotas:
        @router.get("/rota-protegida")
        async def rota(user: CurrentUser = Depends(get_current_user)):
            ...
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não autenticado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = _user_from_credentials(credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido ou expirado",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_cron_or_user(
    x_cron_secret: Optional[str] = Header(None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Optional[CurrentUser]:
    """Cron externo (header x-cron-secret) ou usuário logado."""
    if settings.cron_secret and x_cron_secret == settings.cron_secret:
        return None

    user = _user_from_credentials(credentials)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Não autorizado")
    return user


def get_now() -> datetime:
    """'Agora' da requisição (sobrescrito nos testes)."""
    return utcnow()


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Cliente HTTP da requisição (Tutts, BI e planilhas)."""
    async with httpx.AsyncClient() as client:
        yield client


async def get_job_context(
    db: AsyncSession = Depends(get_db),
    http: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    now: datetime = Depends(get_now),
) -> JobContext:
    return JobContext.build(db, http, settings=settings, now=now)
