"""
RAG Chunking module for notemind.
Splits notes and transcripts on paragraph and sentence boundaries.
"""

from .text import TextChunk, TextChunker

__all__ = [
    'TextChunk',
    'TextChunker',
]
