"""Domain objects passed between the sources, judge, store and orchestrator."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


NO_MODEL = "none"


@dataclass(frozen=True)
class Candidate:
    """One provider's answer to a question"""
    provider_id: str  # model name, e.g. gpt-4o-mini
    key: str  # short name used in the judge prompt, e.g. gpt
    label: str  # display name, e.g. GPT
    answer: str


@dataclass(frozen=True)
class JudgeVerdict:
    """Outcome of judging two candidates"""
    best_answer: str
    model: str
    explanation: Optional[str] = None
    fallback: bool = False


@dataclass(frozen=True)
class ConversationRecord:
    """A persisted question/answer pair within a thread"""
    id: int
    owner_id: int
    question: str
    best_answer: str
    model: str
    created_at: datetime
    root_id: Optional[int]

    @property
    def is_root(self) -> bool:
        return self.root_id == self.id


@dataclass
class ChatResult:
    """Everything the caller gets back from one submitted question"""
    question: str
    best_answer: str
    chosen_model: str
    judge_explanation: Optional[str]
    models_considered: List[Dict[str, Any]] = field(default_factory=list)
    root_id: Optional[int] = None
