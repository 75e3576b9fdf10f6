"""
Semantic Module - query understanding without ML.

Provides query intent analysis, relevance validation and prompt building
using rules and regex.
"""

from notemind.semantic.query_analyzer import QueryIntentAnalyzer
from notemind.semantic.relevance_validator import RelevanceValidator
from notemind.semantic.prompt_builder import (
    PromptBuilder,
    NO_RESULTS_MESSAGE,
    EMPTY_ANSWER_MESSAGE,
)

__all__ = [
    "QueryIntentAnalyzer",
    "RelevanceValidator",
    "PromptBuilder",
    "NO_RESULTS_MESSAGE",
    "EMPTY_ANSWER_MESSAGE",
]
