"""
Logging Configuration

Centralized logging setup for the orchestrator. Records emitted while a run
is in progress carry the run id and the behavior being executed, so
interleaved chain replays stay readable.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

ROOT_LOGGER = "behavior_orchestrator"

_run_id: ContextVar[Optional[str]] = ContextVar("orchestrator_run_id", default=None)
_behavior_id: ContextVar[Optional[str]] = ContextVar("orchestrator_behavior_id", default=None)


@contextmanager
def log_context(run_id: Optional[str] = None, behavior_id: Optional[str] = None) -> Iterator[None]:
    """Tag records logged inside the block; unset arguments keep the outer value"""
    tokens = []
    if run_id is not None:
        tokens.append((_run_id, _run_id.set(run_id)))
    if behavior_id is not None:
        tokens.append((_behavior_id, _behavior_id.set(behavior_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def current_run_id() -> Optional[str]:
    return _run_id.get()


def current_behavior_id() -> Optional[str]:
    return _behavior_id.get()


class RunContextFilter(logging.Filter):
    """Copies the active run and behavior ids onto each record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id.get()
        record.behavior_id = _behavior_id.get()
        return True


class OrchestratorFormatter(logging.Formatter):
    """Colored console formatter with run and behavior tags"""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        # Format: [TIME] LEVEL [run] [behavior] [module] message
        parts = [f"[{timestamp}]", f"{level:8}"]

        run_id = getattr(record, "run_id", None)
        if run_id:
            parts.append(f"[run {run_id[:8]}]")
        behavior_id = getattr(record, "behavior_id", None)
        if behavior_id:
            parts.append(f"[{behavior_id}]")

        parts.append(f"[{record.name.replace(ROOT_LOGGER + '.', '')}]")
        parts.append(record.getMessage())

        if record.exc_info:
            parts.append(self.formatException(record.exc_info))

        return " ".join(parts)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure logging for the orchestrator.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for log output
        use_colors: Enable colored console output

    Returns the package logger.
    """
    package_logger = logging.getLogger(ROOT_LOGGER)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.addFilter(RunContextFilter())
    console_handler.setFormatter(OrchestratorFormatter(use_colors=use_colors))
    package_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.addFilter(RunContextFilter())
        file_handler.setFormatter(OrchestratorFormatter(use_colors=False))
        package_logger.addHandler(file_handler)

    # Quiet chatty third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("playwright").setLevel(logging.WARNING)

    package_logger.debug("Logging configured")
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance under the package logger"""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
