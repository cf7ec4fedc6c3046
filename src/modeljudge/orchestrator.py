"""
Orchestrator - answers a question, judges the candidates and threads the result
"""

import asyncio
import functools
import logging
from typing import List, Optional, Tuple

from .database import Database
from .errors import NotFoundError, ValidationError
from .judge import Judge, build_judge
from .models import ChatResult, ConversationRecord
from .settings import Settings
from .sources import AnswerSource, build_sources
from .store import SqlThreadStore, ThreadStore
from .transparency import VerdictLog

logger = logging.getLogger(__name__)


class ConversationOrchestrator:
    """Runs one chat request through fetching, judging and persisting.

    received -> fetching -> judging -> persisting -> responded; any
    unexpected exception propagates to the caller (errored).
    """

    def __init__(self, sources: Tuple[AnswerSource, AnswerSource], judge: Judge,
                 store: ThreadStore, verdict_log: Optional[VerdictLog] = None,
                 history_limit: int = 50):
        self.first, self.second = sources
        self.judge = judge
        self.store = store
        self.verdict_log = verdict_log
        self.history_limit = history_limit

    @classmethod
    def from_settings(cls, config: Settings, database: Database) -> "ConversationOrchestrator":
        sources = build_sources(config)
        # the delegated judge reuses the OpenAI credential
        judge = build_judge(config, sources[0])
        return cls(
            sources,
            judge,
            SqlThreadStore(database),
            VerdictLog.from_settings(config),
            history_limit=config.history_limit,
        )

    async def _run_store(self, fn, *args, **kwargs):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    async def _fetch(self, source: AnswerSource, question: str) -> str:
        try:
            return await source.fetch_answer(question)
        except Exception as e:
            # sources are not supposed to raise; keep the sibling running regardless
            logger.error(f"{source.label} source raised unexpectedly: {e}")
            return source.no_answer

    async def submit_question(self, owner_id: int, question, root_id: Optional[int] = None) -> ChatResult:
        """Answer a question for a user and append it to a thread"""
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("Question must be a non-empty string")
        question = question.strip()

        logger.debug(f"owner={owner_id} state=fetching")
        first_answer, second_answer = await asyncio.gather(
            self._fetch(self.first, question),
            self._fetch(self.second, question),
        )
        first = self.first.candidate(first_answer)
        second = self.second.candidate(second_answer)

        logger.debug(f"owner={owner_id} state=judging")
        verdict = await self.judge.judge(question, first, second)

        logger.debug(f"owner={owner_id} state=persisting")
        effective_root = None
        if root_id is not None:
            parent = await self._run_store(self.store.get_root, owner_id, root_id)
            if parent is None:
                logger.info(f"Thread {root_id} not found for owner {owner_id}, starting a new thread")
            else:
                effective_root = parent.id

        try:
            record_id = await self._run_store(
                self.store.append, owner_id, question, verdict.best_answer, verdict.model, effective_root
            )
        except NotFoundError:
            # the thread was deleted after the lookup
            logger.info(f"Thread {effective_root} vanished for owner {owner_id}, starting a new thread")
            effective_root = None
            record_id = await self._run_store(
                self.store.append, owner_id, question, verdict.best_answer, verdict.model
            )
        if effective_root is None:
            effective_root = record_id

        if self.verdict_log:
            await self.verdict_log.record(owner_id, effective_root, question, (first, second), verdict)

        logger.info(
            f"Answered question for owner {owner_id}: chose {verdict.model} "
            f"(record={record_id}, thread={effective_root}, fallback={verdict.fallback})"
        )
        return ChatResult(
            question=question,
            best_answer=verdict.best_answer,
            chosen_model=verdict.model,
            judge_explanation=verdict.explanation,
            models_considered=[
                {"model": first.provider_id, "answer": first.answer},
                {"model": second.provider_id, "answer": second.answer},
            ],
            root_id=effective_root,
        )

    async def list_threads(self, owner_id: int, limit: Optional[int] = None) -> List[ConversationRecord]:
        limit = limit or self.history_limit
        return await self._run_store(self.store.list_roots, owner_id, limit)

    async def get_thread(self, owner_id: int, root_id: int) -> List[ConversationRecord]:
        return await self._run_store(self.store.list_thread, owner_id, root_id)

    async def delete_thread(self, owner_id: int, root_id: int) -> bool:
        return await self._run_store(self.store.delete_thread, owner_id, root_id)
