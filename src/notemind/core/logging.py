"""
Simple asynchronous logging for notemind.
"""

import re
import time
import os
import yaml
from pathlib import Path
from typing import List, Pattern, Optional
from contextlib import contextmanager
from loguru import logger as loguru_logger


DEFAULT_LOG_FILE = ".notemind/logs/debug.log"
DEFAULT_LOG_LEVEL = "INFO"


class AsyncLogger:
    """
    Asynchronous logger with a flat format.

    Format: timestamp | level | component | message
    Structured context is passed as keyword arguments and bound to the record.
    """

    # Single sink shared by every instance
    _handler_id = None

    def __init__(self, component: str, debug_mode: bool = False):
        self.component = component
        self.debug_mode = debug_mode
        self._setup_async_handler()

    def _setup_async_handler(self):
        """
        Registers the shared file sink once.

        - enqueue=True so callers never block on disk I/O
        - 10 MB rotation with zip compression
        - level from NOTEMIND_LOG_LEVEL or logging.level
        """
        if AsyncLogger._handler_id is None:
            AsyncLogger._handler_id = loguru_logger.add(
                _get_log_file(),
                format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[component]} | {message} | {extra}",
                rotation="10 MB",
                compression="zip",
                enqueue=True,
                level=_get_log_level(),
                filter=lambda record: "component" in record["extra"],
            )

    def log(self, level: str, message: str, **context):
        """Queues a record; the loguru worker writes it in the background."""
        loguru_logger.bind(component=self.component, **context).log(level, message)

    def debug(self, message: str, **context):
        """Log at DEBUG level."""
        self.log("DEBUG", message, **context)

    def info(self, message: str, **context):
        """Log at INFO level."""
        self.log("INFO", message, **context)

    def warning(self, message: str, **context):
        """Log at WARNING level."""
        self.log("WARNING", message, **context)

    def error(self, message: str, include_trace: Optional[bool] = None, **context):
        """
        Log at ERROR level with an optional stack trace.

        Args:
            message: Error message
            include_trace: Whether to attach the stack trace (None = follow debug_mode)
            **context: Extra structured context
        """
        should_include_trace = include_trace if include_trace is not None else self.debug_mode

        if should_include_trace:
            import traceback

            context["stack_trace"] = traceback.format_exc()

        self.log("ERROR", message, **context)


class SensitiveDataMasker:
    """
    Masks sensitive data before it reaches the logs.

    Embedding and LLM endpoints are called with bearer tokens, and provider
    error bodies sometimes echo them back.
    """

    def __init__(self, patterns: Optional[List[Pattern]] = None):
        self.patterns = patterns or []

    def mask(self, text: str) -> str:
        """
        Masks sensitive data.

        Examples:
        - "Bearer sk-abc123def456..." -> "Bearer ***"
        - "api_key=abc123def456" -> "api_key=***"
        - "a1b2c3d4e5f6a7b8c9d0" -> "a1b2c3d4..."
        """
        masked = text

        masked = re.sub(r'(Bearer\s+)[A-Za-z0-9._\-]{8,}', r'\1***', masked)

        # OpenAI style keys
        masked = re.sub(r'\bsk-[A-Za-z0-9_\-]{8,}', 'sk-***', masked)

        masked = re.sub(
            r'(api_key|apikey|token|secret|password|key)=[A-Za-z0-9_\-]{8,}',
            r'\1=***',
            masked,
            flags=re.IGNORECASE,
        )

        # Long hex hashes keep their first 8 chars
        masked = re.sub(r'\b([a-f0-9]{8})[a-f0-9]{8,}\b', r'\1...', masked)

        for pattern in self.patterns:
            masked = pattern.sub('***', masked)

        return masked


class PerformanceLogger:
    """
    Logger specialised in duration measurements.
    """

    def __init__(self):
        self.logger = AsyncLogger("performance")

    @contextmanager
    def measure(self, operation: str, **context):
        """
        Context manager that logs how long an operation took.

        Usage:
        ```
        with perf_logger.measure("keyword_search", documents=len(corpus)):
            results = strategy.score(corpus, query)
        ```
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start
            self.logger.info(
                "Operation completed", operation=operation, duration_ms=duration * 1000, **context
            )


def _read_logging_config() -> dict:
    """Reads the logging section of the .notemind file, if any."""
    try:
        config_path = Path(os.getenv("NOTEMIND_CONFIG", ".notemind"))
        if config_path.is_file():
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
                return config.get("logging", {}) or {}
    except (OSError, yaml.YAMLError):
        pass
    return {}


def _get_log_file() -> str:
    return os.getenv("NOTEMIND_LOG_FILE") or _read_logging_config().get("file", DEFAULT_LOG_FILE)


def _get_log_level() -> str:
    """Reads the log level from the environment, then the .notemind file."""
    level = os.getenv("NOTEMIND_LOG_LEVEL") or _read_logging_config().get("level") or DEFAULT_LOG_LEVEL
    return str(level).upper()


def _get_debug_mode() -> bool:
    """Reads debug_mode from the .notemind file, then the environment."""
    if os.getenv("NOTEMIND_DEBUG") is not None:
        return os.getenv("NOTEMIND_DEBUG", "false").lower() == "true"
    return bool(_read_logging_config().get("debug_mode", False))


logger = AsyncLogger("notemind", debug_mode=_get_debug_mode())
masker = SensitiveDataMasker()
perf_logger = PerformanceLogger()
