"""
Unified exception hierarchy for notemind.

Single source of exceptions and serialisable error responses for the
retrieval engine and the application layer that calls it.
"""

import secrets
from typing import Dict, Any, Optional, List
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from notemind.core.utils.datetime_utils import utc_now, format_iso


# ============================================================================
# PART 1: PYTHON EXCEPTIONS (raise/catch)
# ============================================================================


class NotemindError(Exception):
    """
    Base error of the notemind engine.

    Features:
    1. Structured serialisation
    2. Rich context
    3. Resolution suggestions
    4. Unique id for tracking
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        self.id: str = secrets.token_hex(16)
        self.timestamp: datetime = utc_now()
        self.message: str = message
        self.code: str = code or self.__class__.__name__
        self.context: Dict[str, Any] = context or {}
        self.cause: Optional[Exception] = cause
        self.suggestions: List[str] = []
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialises the error for the application layer.

        Returns:
            {
                "error_id": "hex32chars",
                "code": "EmbeddingError",
                "message": "Embedding provider returned 500",
                "timestamp": "2024-01-20T10:30:00Z",
                "context": {...}
            }
        """
        result: Dict[str, Any] = {
            "error_id": self.id,
            "code": self.code,
            "message": self.message,
            "timestamp": format_iso(self.timestamp),
            "context": self.context,
        }

        if self.cause:
            result["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}

        if self.suggestions:
            result["suggestions"] = self.suggestions

        return result

    def add_suggestion(self, suggestion: str) -> None:
        """
        Adds a resolution hint; duplicates and empty strings are ignored.

        Example:
            error = EmbeddingError("Embedding provider unreachable")
            error.add_suggestion("Check embeddings.base_url in .notemind")
        """
        if not suggestion or not isinstance(suggestion, str):
            return

        if suggestion not in self.suggestions:
            self.suggestions.append(suggestion)

    def is_retryable(self) -> bool:
        """Whether retrying the same call may succeed."""
        return False


class ConfigurationError(NotemindError):
    """Invalid or missing configuration."""

    pass


class ValidationError(NotemindError):
    """Invalid input to an engine operation (not a relevance rejection)."""

    pass


class ExternalServiceError(NotemindError):
    """
    Failure of an external service (embedding API, vector store, LLM).

    Tracks the failing service in context["service"].
    """

    def is_retryable(self) -> bool:
        """External service failures are usually transient."""
        return True


class EmbeddingError(ExternalServiceError):
    """The embedding provider could not produce a vector."""

    pass


class VectorBackendError(ExternalServiceError):
    """Upsert, query or delete against the vector store failed."""

    pass


class LLMError(ExternalServiceError):
    """The completion endpoint failed or returned an unusable body."""

    pass


class CorpusUnavailableError(NotemindError):
    """The document snapshot could not be loaded, so no strategy can run."""

    def is_retryable(self) -> bool:
        return True


class AllStrategiesFailedError(NotemindError):
    """Every search strategy raised; distinct from every strategy returning nothing."""

    pass


class SearchCancelledError(NotemindError):
    """The query was superseded by a newer query from the same session."""

    pass


# ============================================================================
# PART 2: RESPONSE MODELS (for the application layer)
# ============================================================================


class ErrorType(str, Enum):
    """Error categories exposed to callers."""

    VALIDATION = "validation_error"
    INTERNAL = "internal_error"
    EXTERNAL_SERVICE = "external_service_error"
    CONFIGURATION = "configuration_error"
    CANCELLED = "cancelled"
    UNAVAILABLE = "unavailable"


class ErrorResponse(BaseModel):
    """Structured error payload for the chat/search UI."""

    error_type: ErrorType = Field(..., description="Error category")
    message: str = Field(..., description="Main error message")
    error_id: Optional[str] = Field(default=None, description="Unique id for tracking")
    context: Optional[Dict[str, Any]] = Field(default=None, description="Extra context")
    suggestions: Optional[List[str]] = Field(default=None, description="Resolution hints")
    code: Optional[str] = Field(default=None, description="Error code")
    retryable: bool = Field(default=False, description="Whether retrying may succeed")


def from_exception(exc: NotemindError) -> ErrorResponse:
    """
    Converts a NotemindError into an ErrorResponse.

    Args:
        exc: Exception to convert

    Returns:
        ErrorResponse ready to serialise
    """
    error_type_map = {
        "ValidationError": ErrorType.VALIDATION,
        "ConfigurationError": ErrorType.CONFIGURATION,
        "ExternalServiceError": ErrorType.EXTERNAL_SERVICE,
        "EmbeddingError": ErrorType.EXTERNAL_SERVICE,
        "VectorBackendError": ErrorType.EXTERNAL_SERVICE,
        "LLMError": ErrorType.EXTERNAL_SERVICE,
        "CorpusUnavailableError": ErrorType.UNAVAILABLE,
        "SearchCancelledError": ErrorType.CANCELLED,
    }

    error_type = error_type_map.get(type(exc).__name__, ErrorType.INTERNAL)

    return ErrorResponse(
        error_type=error_type,
        message=exc.message,
        error_id=exc.id,
        context=exc.context or None,
        suggestions=exc.suggestions or None,
        code=exc.code,
        retryable=exc.is_retryable(),
    )


__all__ = [
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
]
