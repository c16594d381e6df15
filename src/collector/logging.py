"""Structured logging for the collector (structlog over stdlib logging).

A collection run binds ``symbol`` and ``timeframe`` with
``structlog.contextvars.bound_contextvars``; ``add_run_context`` folds the
pair into a single ``run`` field (``BTCUSDT/1h``), so lines from the engine,
the page fetcher and the exchange client can be grepped per run.
"""

import logging
from collections.abc import Iterable

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# ccxt logs every request and response at DEBUG
LIBRARY_LOGGERS = ("ccxt", "uvicorn.access")


def add_run_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace bound ``symbol`` + ``timeframe`` with ``run="SYMBOL/tf"``.

    A lone ``symbol`` or ``timeframe`` is left as is.
    """
    if "symbol" in event_dict and "timeframe" in event_dict:
        symbol = event_dict.pop("symbol")
        timeframe = event_dict.pop("timeframe")
        event_dict["run"] = f"{symbol}/{timeframe}"
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    library_log_level: str = "WARNING",
    library_loggers: Iterable[str] = LIBRARY_LOGGERS,
) -> None:
    """Route structlog and stdlib records through one handler.

    Args:
        log_level: Root level for collector output.
        log_format: ``"json"`` for machine-readable lines, anything else renders
            for the console.
        library_log_level: Level applied to ``library_loggers`` (ccxt, uvicorn).
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_run_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format.lower() == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    library_level = getattr(logging, library_log_level.upper(), logging.WARNING)
    for name in library_loggers:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
