"""
TUTTS CRM API - Ponto de Entrada
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tutts_crm.config import get_settings
from tutts_crm.infrastructure.database import init_db
from tutts_crm.infrastructure.logging_config import setup_logging
from tutts_crm.infrastructure.scheduler import create_scheduler, start_scheduler, stop_scheduler

# Routers
from tutts_crm.api.routes import (
    health_router,
    enrichment_router,
    followups_router,
    leads_router,
    not_started_router,
    reports_router,
)

settings = get_settings()
logger = logging.getLogger(__name__)


# ============================================================
# 🔁 LIFESPAN
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(
        logging.DEBUG if settings.debug else logging.INFO,
        json_output=settings.is_production,
        environment=settings.environment,
    )
    logger.info("🚀 Iniciando Tutts CRM API...")

    await init_db()
    logger.info("✅ Tabelas criadas!")

    if settings.scheduler_enabled:
        create_scheduler()
        start_scheduler()
    else:
        logger.info("⏸️ Scheduler desabilitado (SCHEDULER_ENABLED=false)")

    if not settings.tutts_configured:
        logger.warning("⚠️ TUTTS_API_TOKEN não configurado: consultas à Tutts vão falhar")

    yield

    stop_scheduler()
    logger.info("👋 Encerrando Tutts CRM API...")


# ============================================================
# FASTAPI APP
# ============================================================
app = FastAPI(
    title="Tutts CRM API",
    description="Ciclo de vida e reconciliação de leads do WhatsApp",
    version="1.0.0",
    lifespan=lifespan,
)

# ============================================================
# ⭐ CORS
# ============================================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# ROTAS
# ============================================================
app.include_router(health_router, prefix="/api/v1")
app.include_router(enrichment_router, prefix="/api/v1")
app.include_router(followups_router, prefix="/api/v1")
app.include_router(leads_router, prefix="/api/v1")
app.include_router(not_started_router, prefix="/api/v1")
app.include_router(reports_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"name": "Tutts CRM API", "status": "running"}
