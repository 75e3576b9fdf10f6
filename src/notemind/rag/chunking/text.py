"""
Paragraph and sentence chunker for notes and transcripts.

Splits long content into chunks of at most ``chunk_size`` characters,
preferring paragraph boundaries, then sentence boundaries.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from notemind.core.logging import logger
from notemind.models.chunk import ChunkMetadata, chunk_id
from notemind.models.document import Document

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
SENTENCE_JOINER = " "


@dataclass
class TextChunk:
    """A piece of a document ready to be embedded."""

    id: str
    text: str  # What gets embedded: "{title}\n\n{chunk}"
    metadata: ChunkMetadata


class TextChunker:
    """
    Greedy chunker.

    1. Content that fits returns as a single chunk
    2. Paragraphs are packed while they fit
    3. Oversized paragraphs are packed sentence by sentence
    4. Oversized sentences are hard-split
    """

    def __init__(self, chunk_size: int = 1000):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def split(self, content: Optional[str]) -> List[str]:
        """
        Splits content into chunk strings.

        Empty content yields a single empty chunk so every document still
        gets one vector for its title.
        """
        if not content or len(content) <= self.chunk_size:
            return [content or ""]

        chunks: List[str] = []
        current = ""

        for paragraph in content.split(PARAGRAPH_SEPARATOR):
            if not paragraph.strip():
                continue
            if len(paragraph) > self.chunk_size:
                if current:
                    chunks.append(current)
                    current = ""
                chunks.extend(self._split_paragraph(paragraph))
                continue

            candidate = f"{current}{PARAGRAPH_SEPARATOR}{paragraph}" if current else paragraph
            if len(candidate) <= self.chunk_size:
                current = candidate
            else:
                chunks.append(current)
                current = paragraph

        if current:
            chunks.append(current)

        return chunks or [content[: self.chunk_size]]

    def _split_paragraph(self, paragraph: str) -> List[str]:
        chunks: List[str] = []
        current = ""

        for sentence in SENTENCE_BOUNDARY.split(paragraph):
            if not sentence:
                continue
            if len(sentence) > self.chunk_size:
                if current:
                    chunks.append(current)
                    current = ""
                chunks.extend(
                    sentence[i : i + self.chunk_size] for i in range(0, len(sentence), self.chunk_size)
                )
                continue

            candidate = f"{current}{SENTENCE_JOINER}{sentence}" if current else sentence
            if len(candidate) <= self.chunk_size:
                current = candidate
            else:
                chunks.append(current)
                current = sentence

        if current:
            chunks.append(current)
        return chunks

    def chunk_document(self, document: Document) -> List[TextChunk]:
        """
        Chunks a document into embeddable pieces.

        Returns:
            One TextChunk per piece, ids ``{document_id}_chunk_{i}``
        """
        pieces = self.split(document.content)
        total = len(pieces)
        chunks = [
            TextChunk(
                id=chunk_id(document.id, index),
                text=f"{document.title}{PARAGRAPH_SEPARATOR}{piece}",
                metadata=ChunkMetadata(
                    document_id=document.id,
                    title=document.title,
                    content_chunk=piece,
                    source_type=document.source_type,
                    created_at=document.created_at,
                    chunk_index=index,
                    total_chunks=total,
                ),
            )
            for index, piece in enumerate(pieces)
        ]
        logger.debug("Document chunked", document_id=document.id, chunks=total)
        return chunks
