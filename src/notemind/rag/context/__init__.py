"""
Context assembly for notemind.
"""

from notemind.rag.context.builder import ContextBuilder

__all__ = ["ContextBuilder"]
