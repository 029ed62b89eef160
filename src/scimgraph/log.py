import logging
import sys
from typing import Any, cast

import structlog


def configure_logging(json_logs: bool = False, level: str = "INFO") -> None:
    """
    Configures `structlog` for the process. Applications embedding the package may skip it
    and configure `structlog` themselves; the package only emits events.

    Args:
        json_logs: Render events as JSON lines instead of human-readable console output.
        level: Minimum level of emitted events, e.g. `DEBUG`.
    """
    min_level = logging.getLevelName(level.upper())
    if not isinstance(min_level, int):
        raise ValueError(f"unknown log level {level!r}")

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=cast(Any, processors),
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=min_level)
