"""
LOGGING
=======

Em produção (Railway) os logs saem em JSON, uma linha por evento.
Em desenvolvimento, texto simples para ler no terminal.

Campos de contexto passados via extra= viram chaves do JSON:

    logger.info("Lead enriquecido", extra={"lead_id": 12, "modo": "cron"})
"""

import json
import logging
import sys
from typing import Any

SERVICE_NAME = "tutts-crm"

# Atributos de extra= que sobem para o JSON
CONTEXT_FIELDS = ("lead_id", "follow_up_id", "modo", "job", "etapa")

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """Uma linha JSON por registro, com os campos de contexto do CRM."""

    def __init__(self, environment: str = "production"):
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        log_record: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "service": SERVICE_NAME,
            "environment": self.environment,
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str, ensure_ascii=False)


def setup_logging(level: int = logging.INFO, json_output: bool = True, environment: str = "production"):
    """
    Configura o logging raiz da aplicação.

    CHAMADO POR: main.py no startup
    """
    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter(environment=environment))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    # Remove handlers existentes para evitar duplicação
    root.handlers = []
    root.addHandler(handler)

    # uvicorn usa o handler raiz; bibliotecas de rede ficam só com avisos
    logging.getLogger("uvicorn.access").handlers = []
    logging.getLogger("uvicorn.error").handlers = []
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
