"""
AGENDADOR DO ENRIQUECIMENTO
===========================

Um único job interno: enriquecimento + automação de follow-ups a cada
settings.enrichment_interval_minutes (APScheduler, AsyncIOScheduler).

O cron externo (POST /cron/enriquecimento) pode rodar em paralelo;
max_instances=1 só impede duas execuções simultâneas do job interno.
"""

import logging
from typing import Optional

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from tutts_crm.config import Settings, get_settings
from tutts_crm.infrastructure.jobs.enrichment_service import run_enrichment_job

logger = logging.getLogger(__name__)

ENRICHMENT_JOB_ID = "enrichment_job"

_scheduler: Optional[AsyncIOScheduler] = None

# job_id -> resultado da última execução (exposto no /health)
_last_runs: dict[str, dict] = {}


def _on_job_event(event: JobExecutionEvent) -> None:
    ran_at = event.scheduled_run_time.isoformat() if event.scheduled_run_time else None

    if event.code == EVENT_JOB_MISSED:
        logger.warning(f"⏭️ Job {event.job_id} perdeu a janela de {ran_at}", extra={"job": event.job_id})
        _last_runs[event.job_id] = {"ok": False, "em": ran_at, "erro": "execução perdida"}
    elif event.exception is not None:
        logger.error(f"❌ Job {event.job_id} falhou: {event.exception}", extra={"job": event.job_id})
        _last_runs[event.job_id] = {"ok": False, "em": ran_at, "erro": str(event.exception)}
    else:
        _last_runs[event.job_id] = {"ok": True, "em": ran_at, "resultado": event.retval}


def create_scheduler(settings: Optional[Settings] = None) -> AsyncIOScheduler:
    """
    Cria o scheduler com o job de enriquecimento (idempotente).

    CHAMADO POR: main.py no startup
    """
    global _scheduler

    if _scheduler is not None:
        return _scheduler

    settings = settings or get_settings()
    interval = settings.enrichment_interval_minutes

    sched = AsyncIOScheduler(
        timezone=settings.timezone,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": interval * 60,
        },
    )
    sched.add_job(
        run_enrichment_job,
        trigger=IntervalTrigger(minutes=interval),
        id=ENRICHMENT_JOB_ID,
        name="Enriquecimento de Leads",
        replace_existing=True,
    )
    sched.add_listener(_on_job_event, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    _scheduler = sched
    logger.info(f"📅 Enriquecimento agendado a cada {interval} min ({settings.timezone})")
    return sched


def start_scheduler() -> None:
    if _scheduler is None:
        logger.error("❌ Scheduler não foi criado. Chame create_scheduler() primeiro.")
        return
    if not _scheduler.running:
        _scheduler.start()
        logger.info("🚀 Scheduler iniciado")


def stop_scheduler() -> None:
    """CHAMADO POR: main.py no shutdown"""
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("🛑 Scheduler parado")

    _scheduler = None
    _last_runs.clear()


def _job_info(job) -> dict:
    next_run = getattr(job, "next_run_time", None)
    return {
        "id": job.id,
        "name": job.name,
        "next_run": next_run.isoformat() if next_run else None,
        "last_run": _last_runs.get(job.id),
    }


def get_scheduler_status() -> dict:
    if _scheduler is None:
        return {"running": False, "jobs": []}
    return {
        "running": _scheduler.running,
        "jobs": [_job_info(job) for job in _scheduler.get_jobs()],
    }
