"""
HEALTH CHECK
============

Usado pelo Railway e pelo monitoramento externo.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tutts_crm.infrastructure.database import get_db, ping_db
from tutts_crm.infrastructure.scheduler import get_scheduler_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Retorna 200 se tudo OK, 503 se o banco não responde.
    """
    checks = {}
    healthy = True

    try:
        await ping_db(db)
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"❌ Health check: banco indisponível: {e}")
        checks["database"] = f"error: {e}"
        healthy = False

    checks["scheduler"] = get_scheduler_status()

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "healthy" if healthy else "unhealthy", "checks": checks},
    )
