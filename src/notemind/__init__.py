"""
notemind - Hybrid retrieval and context assembly for a personal knowledge base.

Searches notes and video transcripts by keyword and by meaning, validates
that results are about what the query names, and packs them into a
budgeted context for a language model.
"""

__version__ = "0.1.0"

# Core components
from notemind.core import (
    logger,
    Settings,
    RetrievalConfig,
    NotemindError,
    ValidationError,
    ConfigurationError,
    ExternalServiceError,
    CorpusUnavailableError,
    AllStrategiesFailedError,
    SearchCancelledError,
)

# Models
from notemind.models import (
    Document,
    SourceType,
    SearchResult,
    SearchStrategy,
    SearchMetrics,
    SearchResponse,
    AnswerResponse,
)

# Main services
from notemind.services import SearchOrchestrator, IndexingService

# Package metadata
__all__ = [
    "__version__",
    # Core
    "logger",
    "Settings",
    "RetrievalConfig",
    # Exceptions
    "NotemindError",
    "ValidationError",
    "ConfigurationError",
    "ExternalServiceError",
    "CorpusUnavailableError",
    "AllStrategiesFailedError",
    "SearchCancelledError",
    # Models
    "Document",
    "SourceType",
    "SearchResult",
    "SearchStrategy",
    "SearchMetrics",
    "SearchResponse",
    "AnswerResponse",
    # Services
    "SearchOrchestrator",
    "IndexingService",
]


# Quick access to configuration
def get_config():
    """
    Get the current notemind configuration.

    Example:
        >>> config = get_config()
        >>> print(config.get("search.top_k"))
        8

    Returns:
        Settings: Configuration instance
    """
    return Settings()
