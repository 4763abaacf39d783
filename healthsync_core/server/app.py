"""本地知识库应答服务（FastAPI 应用）。

提供聊天客户端使用的两个端点：

- ``GET /health``：存活探测。
- ``POST /api/chat``：chat/completions 风格的端点，答案来自
  :mod:`healthsync_core.server.knowledge_base` 中的关键字表。
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from healthsync_core.config.settings import settings
from healthsync_core.infrastructure.logging.logger import logger
from healthsync_core.server.knowledge_base import get_health_advice, match_keyword
from healthsync_core.server.schemas import (
    ChatCompletionResponse,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    ReplyChoice,
    ReplyMessage,
)

INVALID_REQUEST = "Invalid request: messages array is required."
INTERNAL_ERROR = "An error occurred while processing your request."


def _error(status_code: int, message: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _last_user_content(messages: list[Any]) -> str:
    if not messages:
        return ""
    last = messages[-1]
    if isinstance(last, dict):
        content = last.get("content")
        return content if isinstance(content, str) else ""
    return ""


def create_app(cfg=settings) -> FastAPI:
    """创建并配置 FastAPI 应用。"""
    app = FastAPI(title="HealthSync API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[cfg.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        logger.info("GET /health")
        return HealthResponse(status="OK", message="HealthSync API is running")

    @app.post("/api/chat", response_model=ChatCompletionResponse)
    async def chat(request: Request):
        try:
            try:
                body = await request.json()
            except ValueError:
                return _error(400, INVALID_REQUEST)
            messages = body.get("messages") if isinstance(body, dict) else None
            if not isinstance(messages, list):
                return _error(400, INVALID_REQUEST)

            user_message = _last_user_content(messages)
            logger.info(
                "POST /api/chat",
                extra={"extra": {
                    "model": body.get("model", cfg.chat_model),
                    "keyword": match_keyword(user_message),
                    "message_count": len(messages),
                }},
            )
            answer = get_health_advice(user_message)
            return ChatCompletionResponse(choices=[ReplyChoice(message=ReplyMessage(content=answer))])
        except Exception as exc:
            logger.error("Chat endpoint error", extra={"extra": {"error": str(exc)}})
            return _error(500, INTERNAL_ERROR)

    return app


app = create_app()
