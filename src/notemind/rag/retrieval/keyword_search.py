"""
Lexical search over the document snapshot.

Scores phrases, word proximity and individual words in titles and content.
Pure and local: no I/O, same input gives the same output.
"""

from typing import Iterable, List, Optional

from notemind.core.config import SearchConfig
from notemind.core.logging import logger
from notemind.models.document import Document
from notemind.models.search import KeywordMetadata, SearchResult, sort_results
from notemind.rag.retrieval.text_utils import (
    extract_key_terms,
    extract_phrases,
    generate_snippet,
    proximity_score,
    query_words,
)

TITLE_PHRASE_WEIGHT = 0.8
CONTENT_PHRASE_WEIGHT = 0.4
PROXIMITY_WEIGHT = 0.3
TITLE_WORD_WEIGHT = 0.3
CONTENT_WORD_WEIGHT = 0.1
LONG_CONTENT_BONUS = 0.1
LONG_CONTENT_CHARS = 500
TRANSCRIPT_BONUS = 0.05


class KeywordSearchStrategy:
    """
    Keyword/phrase/proximity scoring.

    Weights:
    - +0.8 per query phrase in the title, +0.4 per phrase in the content
    - +0.3 * proximity score
    - +0.3 per query word in the title, +0.1 per word in the content
    - +0.1 for content over 500 chars, +0.05 for transcripts

    Documents scoring below ``keyword_min_score`` are dropped.
    """

    name = "keyword"

    def __init__(self, config: Optional[SearchConfig] = None):
        self.config = config or SearchConfig()

    def score(self, document: Document, query: str) -> float:
        """Raw (unclamped) score of one document."""
        query_lower = query.lower()
        words = query_words(query_lower)
        phrases = extract_phrases(query_lower)

        title = document.title.lower()
        content = document.text.lower()

        relevance = 0.0
        for phrase in phrases:
            if phrase in title:
                relevance += TITLE_PHRASE_WEIGHT
            if phrase in content:
                relevance += CONTENT_PHRASE_WEIGHT

        relevance += proximity_score(content, words) * PROXIMITY_WEIGHT

        for word in words:
            if word in title:
                relevance += TITLE_WORD_WEIGHT
            if word in content:
                relevance += CONTENT_WORD_WEIGHT

        if len(document.text) > LONG_CONTENT_CHARS:
            relevance += LONG_CONTENT_BONUS
        if document.is_transcription:
            relevance += TRANSCRIPT_BONUS

        return relevance

    def score_documents(self, corpus: Iterable[Document], query: str) -> List[SearchResult]:
        """
        Synchronous scoring of the whole corpus.

        Returns:
            Results sorted by relevance desc, id asc
        """
        if not query or not query.strip():
            return []

        results = []
        for document in corpus:
            relevance = self.score(document, query)
            if relevance < self.config.keyword_min_score:
                continue

            results.append(
                SearchResult(
                    id=document.id,
                    title=document.title,
                    content=document.text,
                    relevance=min(relevance, 1.0),
                    snippet=generate_snippet(document.content or document.title, query),
                    source_type=document.source_type,
                    metadata=KeywordMetadata(
                        **SearchResult.base_metadata(document),
                        key_terms=extract_key_terms(document.content, query),
                    ),
                )
            )

        ranked = sort_results(results)
        logger.debug("Keyword search completed", query=query[:50], results=len(ranked))
        return ranked

    async def search(self, corpus: Iterable[Document], query: str) -> List[SearchResult]:
        return self.score_documents(corpus, query)
