"""
Structlog loggers for the library.

Library loggers are built with ``structlog.wrap_logger`` around stdlib loggers
under ``paygate``, so the process-wide structlog configuration and the root
logger both stay as the host application set them. On import the ``paygate``
logger only gets a ``NullHandler``.
"""
import logging
import json
import structlog
from structlog.processors import TimeStamper, add_log_level, JSONRenderer
from structlog.dev import ConsoleRenderer
from structlog.contextvars import merge_contextvars
from structlog.stdlib import ProcessorFormatter
from typing import Any, List


LOGGER_NAME = "paygate"

_configured = False

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


def _shared_pre_chain() -> List[Any]:
    return [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def get_renderer(debug: bool = False) -> Any:
    """Console renderer in debug, JSON otherwise.

    structlog passes ``default``/``sort_keys`` to the serializer, so it is wrapped.
    """
    if debug:
        return ConsoleRenderer(colors=False)

    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)

    return JSONRenderer(serializer=_dumps)


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Attach a structlog-formatting stdlib handler to the ``paygate`` logger."""
    global _configured
    if _configured and not force:
        return

    formatter = ProcessorFormatter(
        foreign_pre_chain=_shared_pre_chain(),
        processors=[
            ProcessorFormatter.remove_processors_meta,
            get_renderer(debug),
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    lib_logger = logging.getLogger(LOGGER_NAME)
    lib_logger.handlers.clear()
    lib_logger.addHandler(handler)
    lib_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    lib_logger.propagate = False
    _configured = True


def get_logger(name: str = LOGGER_NAME) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to the stdlib logger ``name``."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_pre_chain(),
            ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
    )
