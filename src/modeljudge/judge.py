"""
Judge strategies - pick the best of two candidate answers
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .availability import AvailabilityClassifier, default_classifier
from .models import NO_MODEL, Candidate, JudgeVerdict
from .prompts import JUDGE_SYSTEM_PROMPT, PromptVault
from .settings import Settings
from .sources import AnswerSource

logger = logging.getLogger(__name__)

NO_ANSWER_TEXT = "No models returned an answer."


class Judge(ABC):
    """Strategy interface for choosing between provider A and provider B.

    Steps shared by every strategy: if neither answer is real the verdict
    carries the first non-empty text (or a fixed message) and model "none";
    if exactly one is real it wins. Only the both-real case differs.
    """

    def __init__(self, classifier: Optional[AvailabilityClassifier] = None):
        self.classifier = classifier or default_classifier

    async def judge(self, question: str, first: Candidate, second: Candidate) -> JudgeVerdict:
        first_real = self.classifier.is_real_answer(first.answer)
        second_real = self.classifier.is_real_answer(second.answer)

        if not first_real and not second_real:
            fallback_text = next(
                (c.answer for c in (first, second) if c.answer and c.answer.strip()),
                NO_ANSWER_TEXT,
            )
            return JudgeVerdict(
                best_answer=fallback_text,
                model=NO_MODEL,
                explanation="Neither model returned a usable answer.",
            )

        if first_real != second_real:
            winner = first if first_real else second
            return JudgeVerdict(
                best_answer=winner.answer,
                model=winner.provider_id,
                explanation=f"Only {winner.label} returned a usable answer.",
            )

        return await self.choose(question, first, second)

    @abstractmethod
    async def choose(self, question: str, first: Candidate, second: Candidate) -> JudgeVerdict:
        """Pick between two real answers"""
        pass


class LengthJudge(Judge):
    """Deterministic heuristic: the longer answer wins, ties go to provider A"""

    async def choose(self, question: str, first: Candidate, second: Candidate) -> JudgeVerdict:
        winner = second if len(second.answer) > len(first.answer) else first
        return JudgeVerdict(
            best_answer=winner.answer,
            model=winner.provider_id,
            explanation=f"Both models answered; {winner.label} gave the more detailed answer.",
        )


class LLMJudge(Judge):
    """Delegates the both-real case to a judge model.

    Anything short of a well-formed verdict (no credential, transport error,
    malformed output) falls back to provider A.
    """

    def __init__(self, engine: AnswerSource, model: Optional[str] = None,
                 classifier: Optional[AvailabilityClassifier] = None):
        super().__init__(classifier)
        self.engine = engine
        self.model = model

    def _fallback(self, first: Candidate, reason: str) -> JudgeVerdict:
        return JudgeVerdict(
            best_answer=first.answer,
            model=first.provider_id,
            explanation=f"{reason} Defaulted to {first.label}.",
            fallback=True,
        )

    async def choose(self, question: str, first: Candidate, second: Candidate) -> JudgeVerdict:
        if not self.engine.is_configured:
            logger.warning("Judge model not configured, defaulting to provider A")
            return self._fallback(first, "Judge model is not configured.")

        prompt = PromptVault.judge_prompt(
            question, {first.key: first.answer, second.key: second.answer}
        )
        try:
            raw = await self.engine.complete(JUDGE_SYSTEM_PROMPT, prompt, model=self.model)
        except Exception as e:
            logger.error(f"Judge call failed: {e}")
            return self._fallback(first, "Judge call failed.")

        parsed = PromptVault.parse_verdict(raw, (first.key, second.key))
        if parsed is None:
            logger.warning(f"Judge returned malformed output: {str(raw)[:200]!r}")
            return self._fallback(first, "Could not parse the judge's verdict.")

        winner = first if parsed["chosen_model"] == first.key else second
        return JudgeVerdict(
            best_answer=winner.answer,
            model=winner.provider_id,
            explanation=parsed["reason"],
        )


def build_judge(config: Settings, judge_engine: AnswerSource,
                classifier: Optional[AvailabilityClassifier] = None) -> Judge:
    """Select the judge strategy named by ``config.judge_strategy``"""
    if classifier is None:
        classifier = AvailabilityClassifier(config.no_answer_prefix, config.not_configured_marker)
    strategy = config.judge_strategy.strip().lower()
    if strategy == "length":
        return LengthJudge(classifier)
    if strategy == "llm":
        return LLMJudge(judge_engine, config.judge_model, classifier)
    raise ValueError(f"Unknown judge strategy: {config.judge_strategy}")
