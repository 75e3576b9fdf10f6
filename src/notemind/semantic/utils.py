"""
Shared utilities for the Semantic module.

Vocabulary and entity extraction used by both the query analyzer and the
relevance validator.
"""

import re
from typing import Dict, Iterable, List, Optional

# Canonical creator name -> aliases that also identify it
KNOWN_CREATORS: Dict[str, List[str]] = {
    "asmongold": ["asmon", "zackrawrr"],
    "seth godin": ["seth"],
    "jordan peterson": ["peterson", "jbp"],
    "joe rogan": ["rogan", "jre"],
    "elon musk": ["musk", "elon"],
}

TOPICS = [
    "gaming",
    "marketing",
    "psychology",
    "philosophy",
    "technology",
    "business",
    "self-help",
    "productivity",
    "leadership",
]

STOP_WORDS = frozenset(
    [
        "about",
        "after",
        "been",
        "before",
        "come",
        "could",
        "does",
        "from",
        "good",
        "have",
        "here",
        "just",
        "know",
        "like",
        "long",
        "make",
        "many",
        "much",
        "over",
        "said",
        "should",
        "some",
        "such",
        "take",
        "tell",
        "than",
        "that",
        "their",
        "them",
        "there",
        "these",
        "they",
        "this",
        "time",
        "very",
        "want",
        "well",
        "were",
        "what",
        "when",
        "where",
        "which",
        "while",
        "will",
        "with",
        "would",
        "your",
        # Question openers show up capitalized
        "did",
        "how",
        "the",
        "who",
        "why",
        "can",
        "is",
        "are",
        "do",
    ]
)

VIDEO_WORDS = ["video", "watch", "stream", "episode", "clip", "reaction"]
NOTE_WORDS = ["note", "article", "text", "document", "write"]

_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-zA-Z]+\b")
_QUOTED_RE = re.compile(r'"([^"]+)"')
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_EDGE_PUNCT = "\"'.,;:!?()[]{}"


def collapse(text: str) -> str:
    """Lowercase and drop everything but letters and digits."""
    return _NON_ALNUM_RE.sub("", (text or "").lower())


def contains_word(text: str, word: str) -> bool:
    """True if ``word`` starts a word in ``text`` (so 'videos' matches 'video')."""
    return re.search(r"\b" + re.escape(word), text) is not None


def mentions_any(text: str, words: Iterable[str]) -> bool:
    return any(contains_word(text, w) for w in words)


def dedupe(items: Iterable[str]) -> List[str]:
    """Order-preserving de-duplication."""
    seen = set()
    result = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def find_creators(
    query_lower: str, creators: Optional[Dict[str, List[str]]] = None
) -> List[str]:
    """Canonical names of creators mentioned by name or alias."""
    creators = KNOWN_CREATORS if creators is None else creators
    found = []
    for name, aliases in creators.items():
        if name in query_lower:
            found.append(name)
        elif any(re.search(r"\b" + re.escape(a) + r"\b", query_lower) for a in aliases):
            found.append(name)
    return found


def creator_title_patterns(creators: Optional[Dict[str, List[str]]] = None) -> Dict[str, "re.Pattern"]:
    """
    Loose title patterns per creator.

    Example:
        "joe rogan" -> joe.?rogan (matches "JoeRogan", "Joe-Rogan", "joe rogan")
    """
    creators = KNOWN_CREATORS if creators is None else creators
    return {
        name: re.compile(".?".join(re.escape(part) for part in name.split()), re.IGNORECASE)
        for name in creators
    }


def significant_terms(text: str) -> List[str]:
    """Words longer than four characters that are not stopwords."""
    terms = []
    for raw in text.split():
        term = raw.strip(_EDGE_PUNCT).lower()
        if len(term) > 4 and term not in STOP_WORDS:
            terms.append(term)
    return terms


def capitalized_words(text: str) -> List[str]:
    """Capitalized words from the original-case text, lowercased."""
    return [w.lower() for w in _CAPITALIZED_RE.findall(text) if w.lower() not in STOP_WORDS]


def quoted_phrases(text: str) -> List[str]:
    return [p.strip().lower() for p in _QUOTED_RE.findall(text) if p.strip()]


def drop_subsumed(entities: List[str], anchors: Iterable[str]) -> List[str]:
    """
    Remove single words already covered by a multiword anchor.

    Example:
        >>> drop_subsumed(["joe rogan", "joe", "rogan", "knots"], ["joe rogan"])
        ['joe rogan', 'knots']
    """
    covered = set()
    for anchor in anchors:
        if " " in anchor:
            covered.update(anchor.split())
    return [e for e in entities if " " in e or e not in covered]


def extract_query_entities(
    query: str, creators: Optional[Dict[str, List[str]]] = None
) -> List[str]:
    """
    Entities named by a query.

    Known creators (by name or alias, mapped to the canonical name),
    capitalized words from the original-case query and significant terms.
    """
    query_lower = (query or "").lower().strip()
    found_creators = find_creators(query_lower, creators)
    entities = list(found_creators)
    entities.extend(capitalized_words(query or ""))
    entities.extend(significant_terms(query_lower))
    return dedupe(drop_subsumed(entities, found_creators))
