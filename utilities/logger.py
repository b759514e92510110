"""
Structured logging for the catalog API using structlog.
Provides JSON or console output and an action-scoped logger for endpoint handlers.
"""

import logging
import sys
from pathlib import Path
from typing import Any, List, Optional
import structlog
from structlog.stdlib import LoggerFactory


def _build_processors(log_format: str, debug: bool) -> List[Any]:
    """Assemble the structlog processor chain for the given output format."""
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    return processors


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Path] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging for the API process.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path, always written one event per line
        debug: Add call-site information to every event
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=_build_processors(log_format, debug),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logging.getLogger().addHandler(file_handler)

    structlog.get_logger(__name__).info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


class ActionLogger:
    """
    Logger for endpoint actions, carrying the endpoint name as context.
    """

    def __init__(self, endpoint: str):
        self.logger = structlog.get_logger(f"catalog_api.{endpoint}")
        self.context = {"endpoint": endpoint}

    def bind_context(self, **kwargs) -> "ActionLogger":
        """Bind extra context variables to every subsequent event."""
        self.context.update(kwargs)
        return self

    def log_action_start(self, action: str, **params) -> None:
        """Log the start of an action with its parsed parameters."""
        self.logger.debug("Action started", action=action, **params, **self.context)

    def log_action_complete(self, action: str, rows: int) -> None:
        """Log a successful action and the number of rows returned."""
        self.logger.info("Action completed", action=action, rows=rows, **self.context)

    def log_upstream_error(self, action: str, error: str) -> None:
        """Log a store failure that ends the action."""
        self.logger.error("Upstream query failed", action=action, error=error, **self.context)

    def log_unknown_action(self, action: Optional[str]) -> None:
        """Log a request whose action matched nothing."""
        self.logger.warning("Unknown action requested", action=action, **self.context)
