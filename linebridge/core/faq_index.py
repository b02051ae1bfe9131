"""FAQ catalog loading and the in-memory index used by the retrievers.

The catalog is a JSON array of ``{"question", "answer", "tags"?}`` records
(``q``/``a`` are accepted as short keys). Every (re)load builds a complete new
``FaqSnapshot`` and swaps it in with a single assignment, so readers never see
entries without their vectors or token sets.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, FrozenSet, List, Optional, Tuple, Union

import numpy as np

from linebridge.core.text import tokenize

logger = logging.getLogger(__name__)


class FaqLoadError(ValueError):
    """Raised when a catalog source is missing or malformed."""


@dataclass(frozen=True)
class FaqEntry:
    """One curated question/answer pair."""
    question: str
    answer: str
    tags: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def corpus_text(self) -> str:
        """Text used for both lexical tokens and embeddings."""
        return f"{self.question}\n{self.answer}"


@dataclass(frozen=True, eq=False)
class FaqSnapshot:
    """Immutable view of the catalog, index-aligned across all fields."""
    entries: Tuple[FaqEntry, ...] = ()
    token_sets: Tuple[FrozenSet[str], ...] = ()
    vectors: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.entries)


def parse_catalog(records: Any) -> List[FaqEntry]:
    """
    Validate raw catalog records and convert them into FaqEntry objects.

    Args:
        records: Decoded JSON content; must be a list of objects

    Returns:
        List of FaqEntry in catalog order

    Raises:
        FaqLoadError: If the structure or any record is malformed
    """
    if not isinstance(records, list):
        raise FaqLoadError("FAQ catalog must be a JSON array")

    entries = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise FaqLoadError(f"FAQ record #{i} is not an object")

        question = record.get("question", record.get("q"))
        answer = record.get("answer", record.get("a"))
        if not isinstance(question, str) or not question.strip():
            raise FaqLoadError(f"FAQ record #{i} has no question")
        if not isinstance(answer, str) or not answer.strip():
            raise FaqLoadError(f"FAQ record #{i} has no answer")

        tags = record.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise FaqLoadError(f"FAQ record #{i} has invalid tags")

        entries.append(FaqEntry(question=question.strip(), answer=answer.strip(), tags=frozenset(tags)))

    return entries


def read_catalog(source: Union[str, Path]) -> List[FaqEntry]:
    """Read and parse a catalog file."""
    path = Path(source)
    if not path.exists():
        raise FaqLoadError(f"FAQ catalog not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise FaqLoadError(f"Cannot read FAQ catalog {path}: {e}") from e

    return parse_catalog(records)


class FaqIndex:
    """Process-wide FAQ catalog with optional precomputed embeddings.

    Owned by the bridge and passed explicitly to the retrievers. In online
    mode an embedder (anything with ``async embed(texts) -> np.ndarray``) is
    supplied and one vector is computed per entry at load time.

    Attributes:
        snapshot: Current FaqSnapshot; replaced wholesale on every load
    """

    def __init__(self, embedder=None):
        """
        Initialize an empty index.

        Args:
            embedder: Embedding collaborator for online mode, or None for
                      lexical-only operation
        """
        self.embedder = embedder
        self.snapshot = FaqSnapshot()

    @property
    def entries(self) -> Tuple[FaqEntry, ...]:
        return self.snapshot.entries

    @property
    def vectors(self) -> Optional[np.ndarray]:
        return self.snapshot.vectors

    def __len__(self) -> int:
        return len(self.snapshot)

    async def load(self, source: Union[str, Path]) -> FaqSnapshot:
        """
        (Re)load the catalog from ``source`` and swap in a new snapshot.

        Any failure (missing file, malformed data, embedding error) resets the
        index to empty and logs a warning instead of raising.

        Args:
            source: Path to the JSON catalog

        Returns:
            The snapshot now in effect
        """
        try:
            entries = read_catalog(source)
            snapshot = await self.build_snapshot(entries)
        except Exception as e:
            self.snapshot = FaqSnapshot()
            logger.warning(f"No FAQ catalog loaded from {source} (optional): {e}")
            return self.snapshot

        self.snapshot = snapshot
        if snapshot.vectors is not None:
            logger.info(f"FAQ loaded: {len(snapshot)} items with vectors")
        else:
            logger.info(f"FAQ loaded: {len(snapshot)} items")
        return snapshot

    async def build_snapshot(self, entries: List[FaqEntry]) -> FaqSnapshot:
        """Compute token sets and, when an embedder is set, vectors for ``entries``."""
        token_sets = tuple(frozenset(tokenize(e.corpus_text)) for e in entries)

        vectors = None
        if self.embedder is not None and entries:
            vectors = await self.embedder.embed([e.corpus_text for e in entries])
            if len(vectors) != len(entries):
                raise FaqLoadError(
                    f"Embedding count mismatch: {len(vectors)} vectors for {len(entries)} entries"
                )

        return FaqSnapshot(entries=tuple(entries), token_sets=token_sets, vectors=vectors)
