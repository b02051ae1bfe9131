#!/usr/bin/env python3
"""
Validate the FAQ catalog and try lexical queries against it.

Usage:
    python scripts/check_faq.py                       # validate faq.json
    python scripts/check_faq.py --faq other.json      # validate another file
    python scripts/check_faq.py --query "請問報價流程"  # show ranked hits

Runs fully offline (lexical scoring), so it needs no API keys.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import config
from linebridge.core.faq_index import FaqIndex, FaqLoadError, read_catalog
from linebridge.core.retriever import LexicalRetriever

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def validate(path: Path) -> bool:
    """Parse the catalog and report problems."""
    logger.info("=" * 60)
    logger.info(f"Validating FAQ catalog: {path}")
    logger.info("=" * 60)

    try:
        entries = read_catalog(path)
    except FaqLoadError as e:
        logger.error(f"Invalid catalog: {e}")
        return False

    logger.info(f"Total entries: {len(entries)}")

    seen = set()
    for entry in entries:
        if entry.question in seen:
            logger.warning(f"Duplicate question: {entry.question}")
        seen.add(entry.question)
        if len(entry.answer) > config.TextLimits.MAX_REPLY_CHARS:
            logger.warning(f"Answer longer than reply cap: {entry.question}")

    tag_counts = {}
    for entry in entries:
        for tag in entry.tags:
            tag_counts[tag] = tag_counts.get(tag, 0) + 1
    if tag_counts:
        logger.info("\nEntries by tag:")
        for tag, count in sorted(tag_counts.items()):
            logger.info(f"  {tag}: {count}")

    return True


async def try_query(path: Path, query: str, top_k: int):
    index = FaqIndex()
    await index.load(path)
    retriever = LexicalRetriever(index)
    hits = await retriever.search(query, top_k)

    logger.info("\n" + "=" * 60)
    logger.info(f"Query: {query}  ({len(hits)} hits)")
    logger.info("=" * 60)
    for i, hit in enumerate(hits, 1):
        logger.info(f"  {i}. [{hit.score:.3f}] {hit.entry.question}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Validate FAQ catalog and test lexical retrieval")
    parser.add_argument("--faq", type=Path, default=config.FAQ_PATH, help="Catalog file (default: FAQ_PATH)")
    parser.add_argument("--query", help="Run a lexical search for this text")
    parser.add_argument("--top-k", type=int, default=config.FAQ_TOP_K, help="Maximum hits to show")

    args = parser.parse_args()

    if not validate(args.faq):
        sys.exit(1)
    if args.query:
        asyncio.run(try_query(args.faq, args.query, args.top_k))
