"""Configurações da aplicação - carrega variáveis do .env"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",  # carrega local
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===========================================
    # CORE
    # ===========================================
    environment: str = "development"
    database_url: str
    secret_key: str  # mesmo segredo usado pela Tutts para assinar os JWT
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # ===========================================
    # CRON
    # ===========================================
    cron_secret: Optional[str] = None  # header x-cron-secret
    scheduler_enabled: bool = True
    enrichment_interval_minutes: int = 10
    timezone: str = "America/Sao_Paulo"

    # ===========================================
    # TUTTS (status do profissional)
    # ===========================================
    tutts_api_url: str = "https://tutts.com.br/integracao"
    tutts_api_token: Optional[str] = None
    oracle_timeout_seconds: float = 10.0

    # ===========================================
    # PLANILHAS (export CSV do Google Sheets)
    # ===========================================
    spreadsheet_registry_url: Optional[str] = None
    spreadsheet_paid_traffic_url: Optional[str] = None
    spreadsheet_timeout_seconds: float = 30.0

    # ===========================================
    # BI (profissionais em operação)
    # ===========================================
    bi_api_url: Optional[str] = None
    bi_timeout_seconds: float = 15.0

    # ===========================================
    # ENRIQUECIMENTO
    # ===========================================
    enrichment_batch_size: int = 50
    oracle_calls_per_run: int = 50
    oracle_delay_ms: int = 150
    enrichment_cooldown_minutes: int = 30

    # ===========================================
    # PROPRIEDADES
    # ===========================================
    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def tutts_configured(self) -> bool:
        return bool(self.tutts_api_token)

    @property
    def async_database_url(self) -> str:
        # Railway fornece postgresql:// mas asyncpg precisa de postgresql+asyncpg://
        url = self.database_url
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    """Retorna settings cacheadas (só carrega uma vez)."""
    return Settings()
