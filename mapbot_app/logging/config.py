"""
Logging setup for the map runner.

Everything logs through structlog on top of the standard library logging
tree. Values that hold for a whole run, such as the run id bound by the
engine, travel in structlog contextvars and are merged into every record.
"""
import logging
import sys
from typing import Any, Optional

import orjson
import structlog
from structlog.types import FilteringBoundLogger, Processor

from ..config.defaults import LoggingParams

ORCHESTRATOR = "orchestrator"
DEVICE_PROTOCOL = "device_protocol"

# Handlers installed by the last configure_logging call
_installed_handlers: list[logging.Handler] = []


def _dumps(obj: Any, **kwargs: Any) -> str:
    return orjson.dumps(obj, **kwargs).decode()


def _json_renderer() -> structlog.processors.JSONRenderer:
    return structlog.processors.JSONRenderer(serializer=_dumps)


def _shared_processors(include_caller: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.MODULE,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    return processors


def _handler(handler: logging.Handler, renderer: Processor, shared: list[Processor]) -> logging.Handler:
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    ))
    return handler


def configure_logging(params: Optional[LoggingParams] = None) -> None:
    """
    Configure structlog and the root logger.

    Console records go to stderr, coloured for humans unless ``format_json``
    is set. With ``log_file`` set the same records are appended to that file
    as JSON lines. Calling this again replaces the handlers it installed
    before.

    Args:
        params: Logging section of the bot configuration
    """
    params = params or LoggingParams()
    shared = _shared_processors(params.include_caller)

    console_renderer: Processor
    if params.format_json:
        console_renderer = _json_renderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    handlers = [_handler(logging.StreamHandler(sys.stderr), console_renderer, shared)]
    if params.log_file:
        handlers.append(_handler(
            logging.FileHandler(params.log_file, encoding="utf-8"), _json_renderer(), shared
        ))

    root = logging.getLogger()
    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers[:] = handlers
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(getattr(logging, params.level.upper()))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_values: Any) -> FilteringBoundLogger:
    """Get a structlog logger, optionally with values bound to every record."""
    return structlog.get_logger(name, **initial_values)


def get_task_logger(name: str) -> FilteringBoundLogger:
    """Logger for task selection and task routines."""
    return get_logger(name, subsystem=ORCHESTRATOR)


def get_device_logger(name: str) -> FilteringBoundLogger:
    """Logger for apparatus and storage interaction."""
    return get_logger(name, subsystem=DEVICE_PROTOCOL)


def log_transition(
    logger: FilteringBoundLogger,
    event: str,
    previous: Optional[str],
    current: Optional[str],
    **fields: Any
) -> None:
    """
    Emit a state change record with ``from_state`` and ``to_state`` keys.

    A missing state (no task selected, no session) is logged as ``"none"``.
    """
    logger.info(event, from_state=previous or "none", to_state=current or "none", **fields)
