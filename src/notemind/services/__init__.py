"""
Services module for notemind.

Coordinates retrieval, answering and indexing.
"""

from notemind.services.search_orchestrator import SearchOrchestrator, SearchState
from notemind.services.indexing_service import IndexingService

__all__ = [
    "SearchOrchestrator",
    "SearchState",
    "IndexingService",
]
