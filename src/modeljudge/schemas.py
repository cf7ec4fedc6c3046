"""Pydantic models for the Model Judge HTTP API."""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import ChatResult, ConversationRecord


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either spelling on input"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignupIn(CamelModel):
    name: str
    email: str
    password: str


class LoginIn(CamelModel):
    email: str
    password: str


class LoginOut(CamelModel):
    token: str
    name: str
    email: str


class ForgotPasswordIn(CamelModel):
    email: str


class ResetPasswordIn(CamelModel):
    token: str
    password: str


class MessageOut(CamelModel):
    message: str


class ChatIn(CamelModel):
    question: str
    root_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("rootId", "rootConversationId", "root_id"),
    )


class ModelAnswer(CamelModel):
    model: str
    answer: str


class ChatOut(CamelModel):
    question: str
    best_answer: str
    chosen_model: str
    judge_explanation: Optional[str] = None
    models_considered: List[ModelAnswer]
    root_id: int

    @classmethod
    def from_result(cls, result: ChatResult) -> "ChatOut":
        return cls(
            question=result.question,
            best_answer=result.best_answer,
            chosen_model=result.chosen_model,
            judge_explanation=result.judge_explanation,
            models_considered=[ModelAnswer(**m) for m in result.models_considered],
            root_id=result.root_id,
        )


class ThreadItem(CamelModel):
    id: int
    question: str
    best_answer: str
    model: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: ConversationRecord) -> "ThreadItem":
        return cls(
            id=record.id,
            question=record.question,
            best_answer=record.best_answer,
            model=record.model,
            created_at=record.created_at,
        )


class ThreadList(CamelModel):
    items: List[ThreadItem]


class DeleteOut(CamelModel):
    success: bool
