"""
notemind core module.

Exports the fundamental system components.
"""

# Configuration
from notemind.core.config import (
    Settings,
    ConfigValidator,
    RetrievalConfig,
    EmbeddingConfig,
    LLMConfig,
    SearchConfig,
    CacheConfig,
    ContextConfig,
    ValidationConfig,
    VectorConfig,
)

# Exceptions and errors
from notemind.core.exceptions import (
    NotemindError,
    ConfigurationError,
    ValidationError,
    ExternalServiceError,
    EmbeddingError,
    VectorBackendError,
    LLMError,
    CorpusUnavailableError,
    AllStrategiesFailedError,
    SearchCancelledError,
    ErrorType,
    ErrorResponse,
    from_exception,
)

# Logging
from notemind.core.logging import (
    AsyncLogger,
    SensitiveDataMasker,
    PerformanceLogger,
    logger,  # Pre-configured global logger
    perf_logger,
)

# LLM
from notemind.core.llm import Completer, LLMClient

# Tracing and metrics
from notemind.core.tracing import tracer, metrics, LocalTracer, MetricsCollector

# Public exports list
__all__ = [
    # Configuration
    "Settings",
    "ConfigValidator",
    "RetrievalConfig",
    "EmbeddingConfig",
    "LLMConfig",
    "SearchConfig",
    "CacheConfig",
    "ContextConfig",
    "ValidationConfig",
    "VectorConfig",
    # Exceptions
    "NotemindError",
    "ConfigurationError",
    "ValidationError",
    "ExternalServiceError",
    "EmbeddingError",
    "VectorBackendError",
    "LLMError",
    "CorpusUnavailableError",
    "AllStrategiesFailedError",
    "SearchCancelledError",
    "ErrorType",
    "ErrorResponse",
    "from_exception",
    # Logging
    "AsyncLogger",
    "SensitiveDataMasker",
    "PerformanceLogger",
    "logger",
    "perf_logger",
    # LLM
    "Completer",
    "LLMClient",
    # Tracing
    "tracer",
    "metrics",
    "LocalTracer",
    "MetricsCollector",
]
