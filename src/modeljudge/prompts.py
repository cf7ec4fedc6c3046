"""Prompt management and judge-output validation for Model Judge."""

import json
import re
from typing import Dict, Optional, Sequence


ANSWER_SYSTEM_PROMPT = "You are a helpful assistant. Answer clearly and concisely."

JUDGE_SYSTEM_PROMPT = (
    "You are an impartial judge comparing answers from two AI models. "
    "You reply with strict JSON only."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class PromptVault:
    """Centralized prompt construction with strict JSON validation."""

    @staticmethod
    def judge_prompt(question: str, answers: Dict[str, str]) -> str:
        """Build the prompt asking the judge model to pick one answer.

        ``answers`` maps the short model key (``gpt``/``gemini``) to its text.
        """
        keys = list(answers)
        choices = "|".join(f'"{k}"' for k in keys)
        sections = "\n\n".join(
            f"ANSWER FROM {key.upper()}:\n{text}" for key, text in answers.items()
        )
        return (
            "Compare the answers below to the user's question.\n\n"
            "EVALUATION CRITERIA:\n"
            "1. CORRECTNESS: Are the statements accurate?\n"
            "2. COMPLETENESS: Does it address everything that was asked?\n"
            "3. CLARITY: Is it well structured and easy to follow?\n\n"
            f'Return STRICT JSON only: {{"chosen_model":{choices},"reason":"<one or two sentences>"}}\n\n'
            f"QUESTION: {question}\n\n"
            f"{sections}\n\n"
            "JSON:"
        )

    @staticmethod
    def parse_verdict(response: Optional[str], allowed: Sequence[str]) -> Optional[Dict[str, str]]:
        """Parse judge output; None when it does not match the contract."""
        if not response:
            return None

        text = response.strip()
        fenced = _FENCE_RE.match(text)
        if fenced:
            text = fenced.group(1)

        try:
            obj = json.loads(text)
        except ValueError:
            return None

        if not isinstance(obj, dict):
            return None
        chosen = obj.get("chosen_model")
        if not isinstance(chosen, str) or chosen.strip().lower() not in allowed:
            return None
        reason = obj.get("reason")
        if not isinstance(reason, str):
            return None

        return {"chosen_model": chosen.strip().lower(), "reason": reason}
