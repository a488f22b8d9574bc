"""Serviços de domínio (funções puras, sem I/O)."""
from .phone import (
    normalize_phone,
    phone_variants,
    format_display_phone,
    display_variants,
    area_code,
    whatsapp_link,
)
from .regions import DDD_REGIONS, region_for_phone, is_known_region
from .stage_resolver import StageTransition, resolve_stage
from .activation_merge import (
    ActivatedProfessional,
    merge_activated,
    filter_spreadsheet_window,
    only_digits,
)

__all__ = [
    "normalize_phone",
    "phone_variants",
    "format_display_phone",
    "display_variants",
    "area_code",
    "whatsapp_link",
    "DDD_REGIONS",
    "region_for_phone",
    "is_known_region",
    "StageTransition",
    "resolve_stage",
    "ActivatedProfessional",
    "merge_activated",
    "filter_spreadsheet_window",
    "only_digits",
]
