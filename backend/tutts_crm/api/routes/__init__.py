from .health import router as health_router
from .enrichment import router as enrichment_router
from .followups import router as followups_router
from .leads import router as leads_router
from .not_started import router as not_started_router
from .reports import router as reports_router

__all__ = [
    "health_router",
    "enrichment_router",
    "followups_router",
    "leads_router",
    "not_started_router",
    "reports_router",
]
