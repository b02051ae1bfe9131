"""FAQ retrieval and ranking.

Two interchangeable strategies share one contract,
``await search(query, top_k) -> List[RetrievalHit]`` (highest score first):

- LexicalRetriever (offline): Jaccard overlap of token sets plus a small
  bonus per shared domain keyword.
- SemanticRetriever (online): cosine similarity between the query embedding
  and the vectors precomputed by FaqIndex.

Known limitation: CJK text is tokenized per character, so short queries that
share common characters with an entry can score above the lexical threshold.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
import logging

import numpy as np

import config
from linebridge.core.faq_index import FaqEntry, FaqIndex
from linebridge.core.text import tokenize

logger = logging.getLogger(__name__)

COSINE_EPSILON = 1e-9


@dataclass(frozen=True)
class RetrievalHit:
    """A ranked FAQ entry for a single query."""
    entry: FaqEntry
    score: float


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Intersection over union of two token sets (0.0 when both are empty)."""
    a, b = set(a), set(b)
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def keyword_bonus(
    query: str,
    candidate: str,
    keywords: Sequence[str],
    bonus: float = config.KEYWORD_BONUS
) -> float:
    """Bonus for each domain keyword that appears in both query and candidate."""
    query_folded = query.casefold()
    candidate_folded = candidate.casefold()
    shared = sum(
        1 for kw in keywords
        if kw and kw.casefold() in query_folded and kw.casefold() in candidate_folded
    )
    return shared * bonus


def cosine_similarity(a, b) -> float:
    """
    Cosine similarity ``dot(a, b) / (||a|| * ||b|| + eps)``.

    The epsilon keeps zero vectors at 0.0 instead of dividing by zero.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    return float(np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b) + COSINE_EPSILON))


def rank_hits(entries: Sequence[FaqEntry], scores: Sequence[float], threshold: float, top_k: int) -> List[RetrievalHit]:
    """Drop scores at or below ``threshold``, sort descending and keep ``top_k``."""
    hits = [
        RetrievalHit(entry=entry, score=float(score))
        for entry, score in zip(entries, scores)
        if score > threshold
    ]
    hits.sort(key=lambda h: h.score, reverse=True)
    return hits[:max(top_k, 0)]


class LexicalRetriever:
    """Offline retriever scoring token overlap; needs no network access.

    Attributes:
        index: FaqIndex whose snapshot supplies entries and token sets
        keywords: Domain keywords that earn a score bonus when shared
        threshold: Hits must score strictly above this value
    """

    def __init__(
        self,
        index: FaqIndex,
        keywords: Optional[Sequence[str]] = None,
        threshold: float = config.LEXICAL_THRESHOLD,
        bonus: float = config.KEYWORD_BONUS
    ) -> None:
        self.index = index
        self.keywords = list(config.DOMAIN_KEYWORDS if keywords is None else keywords)
        self.threshold = threshold
        self.bonus = bonus

    def score(self, query_tokens: set, query: str, entry: FaqEntry, entry_tokens: Iterable[str]) -> float:
        """Jaccard similarity plus keyword bonus, capped at 1.0."""
        base = jaccard(query_tokens, entry_tokens)
        extra = keyword_bonus(query, entry.corpus_text, self.keywords, self.bonus)
        return min(1.0, base + extra)

    async def search(self, query: str, top_k: int = config.FAQ_TOP_K) -> List[RetrievalHit]:
        """
        Rank FAQ entries by lexical similarity to ``query``.

        Args:
            query: Normalized user message
            top_k: Maximum number of hits (default: 3)

        Returns:
            Hits scoring above the lexical threshold, best first
        """
        snapshot = self.index.snapshot
        if not len(snapshot):
            return []

        query_tokens = tokenize(query)
        scores = [
            self.score(query_tokens, query, entry, tokens)
            for entry, tokens in zip(snapshot.entries, snapshot.token_sets)
        ]
        hits = rank_hits(snapshot.entries, scores, self.threshold, top_k)
        logger.debug(f"Lexical search: '{query[:50]}' -> {len(hits)} hits")
        return hits


class SemanticRetriever:
    """Online retriever using embedding cosine similarity.

    Embedding failures are logged and reported as "no hits" so routing can
    fall through to the model-only answer.
    """

    def __init__(
        self,
        index: FaqIndex,
        embedder,
        threshold: float = config.SEMANTIC_THRESHOLD
    ) -> None:
        """
        Initialize semantic retriever.

        Args:
            index: FaqIndex built with the same embedder
            embedder: Collaborator with ``async embed(texts) -> np.ndarray``
            threshold: Hits must score strictly above this value (default: 0.2)
        """
        self.index = index
        self.embedder = embedder
        self.threshold = threshold

    async def search(self, query: str, top_k: int = config.FAQ_TOP_K) -> List[RetrievalHit]:
        snapshot = self.index.snapshot
        if not len(snapshot) or snapshot.vectors is None:
            return []

        try:
            query_vector = (await self.embedder.embed([query]))[0]
            if len(query_vector) != snapshot.vectors.shape[1]:
                raise ValueError(
                    f"query dimension {len(query_vector)} != index dimension {snapshot.vectors.shape[1]}"
                )
            scores = [cosine_similarity(query_vector, vector) for vector in snapshot.vectors]
        except Exception as e:
            logger.warning(f"FAQ search error: {e}")
            return []

        hits = rank_hits(snapshot.entries, scores, self.threshold, top_k)
        logger.debug(f"Semantic search: '{query[:50]}' -> {len(hits)} hits")
        return hits
