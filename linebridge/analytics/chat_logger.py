"""
Append-only chat log for inbound and outbound messages.

Writes one JSON object per line (JSONL). Appends are serialized through an
asyncio lock so concurrent events never interleave partial lines. Write
failures are logged and never reach the user.
"""

import asyncio
import json
import logging
import time
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
from pydantic import BaseModel, ConfigDict, Field

import config

logger = logging.getLogger(__name__)


class ChatLogRecord(BaseModel):
    """One logged message."""
    model_config = ConfigDict(populate_by_name=True)

    timestamp: int
    direction: str  # "in" | "out"
    user_id: str = Field(alias="userId")
    text: str
    route: Optional[str] = None
    hits: Optional[List[Dict[str, Any]]] = None


class ChatLogger:
    """Logs chat traffic for later analysis."""

    def __init__(self, log_file: Path = None):
        """Initialize the chat logger.

        Args:
            log_file: Path to JSONL log file (default: config.CHAT_LOG_PATH)
        """
        if log_file is None:
            log_file = config.CHAT_LOG_PATH

        self.log_file = Path(log_file)
        self._lock = asyncio.Lock()

    async def append(self, record: ChatLogRecord) -> bool:
        """Append one record; returns False (after logging) if the write failed."""
        line = json.dumps(record.model_dump(by_alias=True, exclude_none=True), ensure_ascii=False) + "\n"
        try:
            async with self._lock:
                self.log_file.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(self.log_file, "a", encoding="utf-8") as f:
                    await f.write(line)
        except Exception as e:
            logger.error(f"log append failed: {e}")
            return False
        return True

    async def log_inbound(self, user_id: str, text: str) -> bool:
        return await self.append(ChatLogRecord(
            timestamp=int(time.time() * 1000),
            direction="in",
            user_id=user_id,
            text=text,
        ))

    async def log_outbound(
        self,
        user_id: str,
        text: str,
        route: str,
        hits: Optional[List[Dict[str, Any]]] = None
    ) -> bool:
        return await self.append(ChatLogRecord(
            timestamp=int(time.time() * 1000),
            direction="out",
            user_id=user_id,
            text=text,
            route=route,
            hits=hits,
        ))

    def read_records(self) -> List[Dict[str, Any]]:
        """All records in file order; unreadable lines are skipped."""
        if not self.log_file.exists():
            return []

        entries = []
        with open(self.log_file, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning(f"Skipping malformed log line: {line[:80]}")
        return entries

    def get_stats(self) -> Dict[str, Any]:
        """Get basic analytics stats from the log file.

        Returns:
            Dictionary with message totals, route breakdown and top FAQ hits
        """
        entries = self.read_records()

        inbound = [e for e in entries if e.get("direction") == "in"]
        outbound = [e for e in entries if e.get("direction") == "out"]
        routes = Counter(e.get("route", "unknown") for e in outbound)

        question_counts = Counter()
        for entry in outbound:
            for hit in entry.get("hits") or []:
                question_counts[hit.get("question", "unknown")] += 1

        return {
            "total_inbound": len(inbound),
            "total_outbound": len(outbound),
            "unique_users": len({e.get("userId") for e in inbound}),
            "routes": dict(routes),
            "handoffs": routes.get("handoff", 0),
            "top_questions": question_counts.most_common(10),
        }
