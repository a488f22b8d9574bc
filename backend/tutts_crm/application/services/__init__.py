"""
Services de aplicação.

Importe direto dos módulos (follow_up_manager, lead_actions,
not_started_service, reporting_service).
"""
