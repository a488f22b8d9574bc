"""Jobs periódicos: enriquecimento de leads e automação de follow-ups."""
from .context import JobContext, open_job_context
from .enrichment_service import (
    EnrichmentRunResult,
    LeadEnrichmentService,
    run_enrichment,
    run_enrichment_job,
)
from .follow_up_service import FollowUpAutomationService, FollowUpRunResult

__all__ = [
    "JobContext",
    "open_job_context",
    "EnrichmentRunResult",
    "LeadEnrichmentService",
    "run_enrichment",
    "run_enrichment_job",
    "FollowUpAutomationService",
    "FollowUpRunResult",
]
