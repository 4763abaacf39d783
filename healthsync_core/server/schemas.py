"""知识库应答服务 API 的 Pydantic 模型。"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    message: str


class ReplyMessage(BaseModel):
    content: str


class ReplyChoice(BaseModel):
    message: ReplyMessage


class ChatCompletionResponse(BaseModel):
    choices: List[ReplyChoice]


class ErrorDetail(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail
