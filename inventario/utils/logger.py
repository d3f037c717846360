"""
Configuración del logging de la aplicación con structlog.

Los módulos registran eventos con nombre corto (`ledger.record`,
`catalog.create`, ...) y el contexto como argumentos con nombre:

    logger.info("ledger.record", material_id=3, qty="10")

En desarrollo se imprime en consola; con `LOG_FORMAT=json` cada evento sale
como una línea JSON.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from inventario.utils.getenv import get_env

LOGGER_NAME = "inventario"


def configure_logging(level: str | None = None) -> None:
    """Configura structlog y el logging estándar (se llama una vez al arrancar la app)."""
    level = (level or get_env("LOG_LEVEL", "INFO")).upper()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if get_env("LOG_FORMAT", "console").lower() == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger(LOGGER_NAME).setLevel(getattr(logging, level, logging.INFO))


def get_logger(name: str = "") -> structlog.stdlib.BoundLogger:
    """Devuelve un logger hijo de `inventario` (p. ej. `inventario.ledger`)."""
    return structlog.get_logger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
