from fastapi import Request
import logging
from typing import Any, Optional
from rich.logging import RichHandler
from ytrelay.config.settings import LoggingConfig, config

logger = logging.getLogger("ytrelay")

def setup_logging(logging_config: Optional[LoggingConfig] = None) -> None:
    """Attach a console handler to the ``ytrelay`` logger (idempotent)."""
    logging_config = logging_config or config.logging

    for handler in list(logger.handlers):
        if getattr(handler, "_ytrelay", False):
            logger.removeHandler(handler)

    if logging_config.enable_rich:
        handler = RichHandler(rich_tracebacks=True, show_path=False)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(logging_config.format))
    handler._ytrelay = True

    logger.addHandler(handler)
    logger.setLevel(logging_config.level)

def log_event(level: int, event: str, message: str, **kwargs: Any) -> None:
    """
    Log a named event.
    ``event`` and every keyword become attributes of the log record.
    """
    logger.log(level, message, extra={"event": event, **kwargs})

def log_with_context(
    request: Request,
    level: int,
    message: str,
    event: str = "request",
    **kwargs: Any
) -> None:
    """
    Log with request context.
    Automatically includes request_id for tracing.
    """
    extra = {
        "request_id": getattr(request.state, "request_id", "unknown"),
        "event": event,
        **kwargs
    }
    logger.log(level, message, extra=extra)

def log_info(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.INFO, message, **kwargs)

def log_error(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.ERROR, message, **kwargs)

def log_warning(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.WARNING, message, **kwargs)

def log_debug(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.DEBUG, message, **kwargs)
