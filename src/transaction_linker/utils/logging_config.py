"""Logging configuration for the transaction linker."""

import logging
import sys
import time
from pathlib import Path

# Root logger namespace for the package
LOGGER_NAMESPACE = "transaction_linker"

# Sensitive field names to mask in log context
SENSITIVE_FIELDS = {'user_id', 'linked_by', 'account_id', 'receipt_url', 'token', 'api_key'}


def _sanitize_context(context: dict[str, object]) -> dict[str, object]:
    """Mask sensitive fields in a context dict.

    Args:
        context: Dictionary of context values.

    Returns:
        Dictionary with sensitive fields masked.
    """
    return {k: '***' if k.lower() in SENSITIVE_FIELDS else v for k, v in context.items()}

# Log format with timestamp, level, module, and message
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = None,
    console_output: bool = True,
) -> logging.Logger:
    """Configure logging for the package.

    No log file is written unless log_file is given.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        console_output: Whether to also log to stderr.

    Returns:
        The package root logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(numeric_level)

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_file:
        file_handler = logging.FileHandler(Path(log_file), encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__).

    Returns:
        A logger nested under the package namespace.
    """
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


class LogContext:
    """Context manager that logs the start, end and failure of an operation.

    Link mutations run inside one so a failed create or update shows up in the
    log together with the ids it touched and how long it ran.
    """

    def __init__(self, logger: logging.Logger, operation: str, **context: object):
        """Initialize log context.

        Args:
            logger: Logger instance to use.
            operation: Name of the operation being performed.
            **context: Additional context to include in log messages.
        """
        self.logger = logger
        self.operation = operation
        self.context = context
        self._started: float | None = None

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the context was entered."""
        if self._started is None:
            return 0.0
        return (time.perf_counter() - self._started) * 1000

    def __enter__(self) -> "LogContext":
        sanitized = _sanitize_context(self.context)
        context_str = ", ".join(f"{k}={v}" for k, v in sanitized.items())
        self.logger.debug(f"Starting {self.operation}: {context_str}")
        self._started = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> bool:
        if exc_type is not None:
            self.logger.error(
                f"Error in {self.operation} after {self.elapsed_ms:.1f}ms: "
                f"{exc_type.__name__}: {exc_val}",
                exc_info=True,
            )
        else:
            self.logger.debug(f"Completed {self.operation} in {self.elapsed_ms:.1f}ms")
        return False
