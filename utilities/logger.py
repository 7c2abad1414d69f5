"""
Structured logging setup using structlog.
Provides JSON or console output and a timing helper for store and service operations.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional
import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call-site information to every event
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

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

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


class OperationLogger:
    """
    Logger for a single timed operation.

    Binds context once and reports the start, completion or failure of the
    operation together with its duration in milliseconds.
    """

    def __init__(self, operation: str, name: str = "operations", **context):
        self.logger = structlog.get_logger(name)
        self.operation = operation
        self.context = dict(context)
        self._started: Optional[float] = None

    def elapsed_ms(self) -> Optional[float]:
        """Milliseconds since start(), or None if never started."""
        if self._started is None:
            return None
        return round((time.perf_counter() - self._started) * 1000, 2)

    def start(self) -> 'OperationLogger':
        """Log operation start and begin timing."""
        self._started = time.perf_counter()
        self.logger.debug("Operation started", operation=self.operation, **self.context)
        return self

    def complete(self, **result) -> None:
        """Log operation completion."""
        self.logger.debug(
            "Operation completed",
            operation=self.operation,
            duration_ms=self.elapsed_ms(),
            **self.context,
            **result
        )

    def fail(self, error: BaseException) -> None:
        """Log operation failure with the error type and message."""
        self.logger.error(
            "Operation failed",
            operation=self.operation,
            duration_ms=self.elapsed_ms(),
            error=str(error),
            error_type=type(error).__name__,
            **self.context
        )
