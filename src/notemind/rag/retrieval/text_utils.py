"""
Text scoring helpers shared by the search strategies.

All functions are pure and deterministic.
"""

import re
from collections import Counter
from typing import Dict, List, Optional

# Best-sentence snippets stop growing past this many characters
CONTEXT_WINDOW = 2000

SNIPPET_WINDOW = 200
SNIPPET_LEAD = 50
SNIPPET_MIN_CONTENT = 100
SNIPPET_FALLBACK = 180
OPTIMIZED_FALLBACK = 150
MAX_KEY_TERMS = 5

_KEY_TERM_RE = re.compile(r"\b\w{4,}\b")
_TOPIC_WORD_RE = re.compile(r"\b\w{3,}\b")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """Lowercase, trim and collapse inner whitespace."""
    return _WHITESPACE_RE.sub(" ", (query or "").strip().lower())


def query_words(query: str, min_length: int = 3) -> List[str]:
    """Lowercased query words with at least ``min_length`` characters."""
    return [w for w in (query or "").lower().split() if len(w) >= min_length]


def extract_phrases(query: str) -> List[str]:
    """
    2-word and 3-word windows over the query, kept if longer than 5 characters.

    Example:
        >>> extract_phrases("rock climbing knots")
        ['rock climbing', 'rock climbing knots', 'climbing knots']
    """
    words = (query or "").split()
    phrases = []
    for i in range(len(words) - 1):
        phrases.append(" ".join(words[i : i + 2]))
        if i < len(words) - 2:
            phrases.append(" ".join(words[i : i + 3]))
    return [p for p in phrases if len(p) > 5]


def proximity_score(content: str, words: List[str]) -> float:
    """
    +0.5 for every adjacent pair of content words that both contain a query word.

    Capped at 1.0; needs at least two query words.
    """
    if len(words) < 2:
        return 0.0

    tokens = (content or "").lower().split()
    score = 0.0
    previous_match = False
    for index, token in enumerate(tokens):
        match = any(w in token for w in words)
        if index > 0 and match and previous_match:
            score += 0.5
            if score >= 1.0:
                return 1.0
        previous_match = match
    return min(score, 1.0)


def extract_key_terms(content: Optional[str], query: str) -> List[str]:
    """
    Up to five content words (4+ chars) found next to query words.

    A content word "touches" the query when it contains a query word or is
    contained in one; it and its two neighbours on each side are collected.
    """
    if not content:
        return []

    words = query_words(query)
    if not words:
        return []

    content_words = _KEY_TERM_RE.findall(content.lower())
    terms: Dict[str, None] = {}
    for index, word in enumerate(content_words):
        if any(q in word or word in q for q in words):
            start = max(0, index - 2)
            end = min(len(content_words) - 1, index + 2)
            for neighbour in content_words[start : end + 1]:
                terms.setdefault(neighbour, None)
                if len(terms) >= MAX_KEY_TERMS:
                    return list(terms)
    return list(terms)


def generate_snippet(content: Optional[str], query: str) -> str:
    """
    Picks the 200-character window holding the most query words.

    The snippet starts 50 characters before the window, with ellipses where
    text was cut. Falls back to the first 180 characters.
    """
    if not content:
        return "No content available"

    lowered = content.lower()
    words = list(dict.fromkeys(query.lower().split()))

    best_index = -1
    best_score = 0
    if words and len(content) > SNIPPET_MIN_CONTENT:
        last_start = len(content) - SNIPPET_MIN_CONTENT
        starts = sorted(
            {m.start() for w in words for m in re.finditer(re.escape(w), lowered) if m.start() < last_start}
        )
        for start in starts:
            window = lowered[start : start + SNIPPET_WINDOW]
            score = sum(1 for w in words if w in window)
            if score > best_score:
                best_score = score
                best_index = start

    if best_index != -1:
        start = max(0, best_index - SNIPPET_LEAD)
        end = min(len(content), best_index + SNIPPET_WINDOW)
        return ("..." if start > 0 else "") + content[start:end] + ("..." if end < len(content) else "")

    return content[:SNIPPET_FALLBACK] + ("..." if len(content) > SNIPPET_FALLBACK else "")


def generate_context_snippet(content: Optional[str], query: str) -> str:
    """
    Joins the sentences densest in query words, up to CONTEXT_WINDOW characters.
    """
    if not content:
        return ""

    words = query.lower().split()
    fallback = content[:OPTIMIZED_FALLBACK] + "..."
    if not words:
        return fallback

    scored = []
    for sentence in _SENTENCE_SPLIT_RE.split(content):
        if len(sentence.strip()) <= 10:
            continue
        lowered = sentence.lower()
        matches = sum(1 for w in words if w in lowered)
        if matches:
            scored.append((matches / len(words), sentence.strip(), len(sentence)))

    if not scored:
        return fallback

    scored.sort(key=lambda item: -item[0])

    parts = []
    total = 0
    for _, sentence, length in scored:
        if total + length > CONTEXT_WINDOW:
            break
        parts.append(sentence)
        total += length

    return " ".join(parts) or fallback


def topic_relevance(content: Optional[str], query: str) -> float:
    """
    Summed term frequency of the query terms, times 10, capped at 1.0.
    """
    if not content:
        return 0.0
    content_words = _TOPIC_WORD_RE.findall(content.lower())
    if not content_words:
        return 0.0

    frequency = Counter(content_words)
    score = sum(frequency.get(term, 0) / len(content_words) for term in query.lower().split())
    return min(score * 10, 1.0)
