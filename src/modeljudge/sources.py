"""
Answer sources - one per language-model provider
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

import google.generativeai as genai
from openai import AsyncOpenAI

from .availability import no_answer_sentinel, not_configured_sentinel
from .models import Candidate
from .prompts import ANSWER_SYSTEM_PROMPT
from .settings import Settings

logger = logging.getLogger(__name__)


class AnswerSource(ABC):
    """Abstract base class for answer sources.

    ``fetch_answer`` never raises: a missing credential, a transport error,
    a timeout or an unexpected response shape all come back as a sentinel
    string. ``complete`` is the raw call and does raise.
    """

    def __init__(self, provider_id: str, key: str, label: str,
                 api_key: Optional[str] = None, timeout: float = 60.0,
                 max_tokens: int = 1024, temperature: float = 0.7):
        self.provider_id = provider_id
        self.key = key
        self.label = label
        self.api_key = api_key
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def no_answer(self) -> str:
        return no_answer_sentinel(self.label)

    @property
    def not_configured(self) -> str:
        return not_configured_sentinel(self.label)

    @abstractmethod
    async def complete(self, system: str, user: str, model: Optional[str] = None) -> str:
        """Send one system/user exchange and return the first text completion"""
        pass

    async def fetch_answer(self, question: str) -> str:
        """Answer a question, degrading every failure to a sentinel"""
        if not self.is_configured:
            logger.warning(f"{self.label} API key not configured")
            return self.not_configured

        try:
            text = await asyncio.wait_for(
                self.complete(ANSWER_SYSTEM_PROMPT, question),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"{self.label} request timed out after {self.timeout}s")
            return self.no_answer
        except Exception as e:
            logger.error(f"{self.label} API error: {e}")
            return self.no_answer

        if not isinstance(text, str):
            logger.error(f"{self.label} returned no text content")
            return self.no_answer
        # blank text is passed through; the judge decides what counts as an answer
        return text

    def candidate(self, answer: str) -> Candidate:
        return Candidate(
            provider_id=self.provider_id,
            key=self.key,
            label=self.label,
            answer=answer,
        )


class OpenAIAnswerSource(AnswerSource):
    """OpenAI GPT source"""

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini",
                 client: Any = None, **kwargs):
        super().__init__(model, "gpt", "GPT", api_key, **kwargs)
        self.model = model
        self.client = client

    def _get_client(self):
        """Lazy initialization of OpenAI client"""
        if self.client is None:
            self.client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self.client

    async def complete(self, system: str, user: str, model: Optional[str] = None) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=model or self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        return response.choices[0].message.content


class GeminiAnswerSource(AnswerSource):
    """Google Gemini source"""

    def __init__(self, api_key: Optional[str], model: str = "gemini-2.5-flash", **kwargs):
        super().__init__(model, "gemini", "Gemini", api_key, **kwargs)
        self.model = model
        self._configured_sdk = False

    def _get_model(self, system: str, model: Optional[str] = None):
        """Build a GenerativeModel carrying the system instruction"""
        if not self._configured_sdk:
            genai.configure(api_key=self.api_key)
            self._configured_sdk = True
        return genai.GenerativeModel(model or self.model, system_instruction=system)

    async def complete(self, system: str, user: str, model: Optional[str] = None) -> str:
        generative_model = self._get_model(system, model)

        # The SDK is synchronous, so run it in the default executor
        loop = asyncio.get_event_loop()
        response = await loop.run_in_executor(
            None,
            lambda: generative_model.generate_content(
                user,
                generation_config={
                    "max_output_tokens": self.max_tokens,
                    "temperature": self.temperature,
                },
                request_options={"timeout": self.timeout},
            ),
        )
        # .text raises ValueError when the response carries no text part
        return response.text


def build_sources(config: Settings) -> Tuple[AnswerSource, AnswerSource]:
    """Create provider A (GPT) and provider B (Gemini) from settings"""
    common = {
        "timeout": config.request_timeout,
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
    }
    gpt = OpenAIAnswerSource(config.get_api_key("openai"), config.openai_model, **common)
    gemini = GeminiAnswerSource(config.get_api_key("gemini"), config.gemini_model, **common)
    return gpt, gemini
