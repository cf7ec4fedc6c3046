"""
Transparency Module - audit trail of judged exchanges
"""

import json
import logging
import time
from collections import deque
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import aiofiles

from .models import Candidate, JudgeVerdict
from .settings import Settings

logger = logging.getLogger(__name__)


class VerdictLog:
    """Keeps every verdict in memory and optionally appends it to a JSONL file"""

    def __init__(self, log_file: Optional[str] = None, max_in_memory: int = 1000):
        self.log_file = Path(log_file) if log_file else None
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
        self.entries = deque(maxlen=max_in_memory)

    @classmethod
    def from_settings(cls, config: Settings) -> "VerdictLog":
        log_file = config.verdict_log_file if config.persist_verdicts else None
        return cls(log_file, config.max_verdicts_in_memory)

    async def record(self, owner_id: int, root_id: Optional[int], question: str,
                     candidates: Sequence[Candidate], verdict: JudgeVerdict):
        """Log one exchange; never raises"""
        entry = {
            "timestamp": time.time(),
            "owner_id": owner_id,
            "root_id": root_id,
            "question": question,
            "candidates": [
                {"model": c.provider_id, "answer": c.answer} for c in candidates
            ],
            "chosen_model": verdict.model,
            "explanation": verdict.explanation,
            "fallback": verdict.fallback,
        }
        self.entries.append(entry)

        if self.log_file:
            await self._persist(entry)

    async def _persist(self, entry: Dict[str, Any]):
        try:
            async with aiofiles.open(self.log_file, "a", encoding="utf-8") as f:
                await f.write(json.dumps(entry, default=str) + "\n")
        except Exception as e:
            logger.error(f"Failed to persist verdict: {e}")

    def recent(self, limit: int = 100) -> List[Dict[str, Any]]:
        return list(self.entries)[-limit:]
