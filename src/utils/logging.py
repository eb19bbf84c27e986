"""Настройка логирования с structlog."""
import structlog
from structlog.types import Processor

from .config import settings

# Маппинг уровней логирования
LOG_LEVEL_MAP = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


def setup_logging(level: str | None = None) -> None:
    """Настраивает structlog для проекта.

    Args:
        level: Уровень логирования (по умолчанию settings.LOG_LEVEL)
    """
    level = (level or settings.LOG_LEVEL).upper()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    # Рендерер зависит от уровня: DEBUG для человека, иначе JSON
    if level == "DEBUG":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_MAP.get(level, 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "segments"):
    """Возвращает настроенный logger."""
    return structlog.get_logger(name)
