"""Structured logging for the AIRM risk engine.

All modules obtain a logger with `get_logger(__name__)` and log key/value
events, e.g. `logger.info("Chunk committed", chunk_index=0, rows=100)`.
`configure_logging()` is called once from the application lifespan; until
then structlog's defaults apply, which keeps library and test usage quiet.
"""

import logging
import logging.config
from typing import Any

import structlog
from structlog.types import Processor


def add_service_context(service_name: str) -> Processor:
    """Build a processor that stamps every event with the service name.

    Args:
        service_name: Value written to the `service` key.

    Returns:
        A structlog processor.
    """

    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def configure_logging(service_name: str, log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure stdlib logging and structlog for the service.

    Args:
        service_name: Service name added to every event.
        log_level: Minimum level for the root logger.
        json_logs: Render JSON lines when True, human-readable console output otherwise.
    """
    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": renderer,
                },
            },
            "handlers": {
                "default": {
                    "level": log_level,
                    "class": "logging.StreamHandler",
                    "formatter": "structured",
                },
            },
            "loggers": {
                "": {
                    "handlers": ["default"],
                    "level": log_level,
                    "propagate": True,
                },
            },
        }
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_service_context(service_name),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to the given module name.

    Args:
        name: Usually `__name__` of the calling module.

    Returns:
        A structlog bound logger.
    """
    return structlog.get_logger(name)
