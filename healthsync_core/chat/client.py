"""聊天客户端核心模块。

把用户输入转换为请求、对失败进行分类与重试，并保证每次提交只有
一个最终结果：成功回复，或一条 error 状态的消息。
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Literal, NoReturn, Optional, Set
from uuid import uuid4

from healthsync_core.chat.connectivity import ConnectivityMonitor
from healthsync_core.chat.errors import ErrorBanner, classify_transport_error, make_error, malformed_reply_error
from healthsync_core.chat.persistence import ConversationPersistence
from healthsync_core.chat.retry import RetryPolicy
from healthsync_core.config.settings import settings
from healthsync_core.domain.conversation import Conversation
from healthsync_core.domain.events import LocationSearchRequest, SearchChannel
from healthsync_core.domain.exceptions import AppError, ValidationError
from healthsync_core.domain.models import ChatMessage, ChatRequest, Message, Preferences
from healthsync_core.infrastructure.logging.logger import logger
from healthsync_core.prompts import load_system_prompt
from healthsync_core.providers.base import ChatProvider


MIN_INPUT_LENGTH = 2
MAX_INPUT_LENGTH = 1000
NOTICE_SECONDS = 4.0

GREETING = "How can I help you with your health concerns today?"
RETRYING_TEXT = "Having trouble reaching the assistant, retrying ({attempt}/{max_attempts})..."

HEALTHCARE_KEYWORDS = (
    "hospital", "urgent", "emergency", "severe",
    "clinic", "doctor", "medical", "treatment",
    "pharmacy", "prescription", "medicine", "care center",
    "healthcare", "facility", "professional medical",
    "seek", "visit", "nearby",
)


@dataclass(frozen=True)
class Notice:
    """短暂提示，dismiss_after 秒后由界面自动关闭。"""

    text: str
    level: Literal["info", "warning"] = "warning"
    dismiss_after: float = NOTICE_SECONDS


def mentions_healthcare(text: str) -> bool:
    lowered = text.lower()
    return any(k in lowered for k in HEALTHCARE_KEYWORDS)


class ChatClient:
    def __init__(
        self,
        provider: ChatProvider,
        *,
        cfg=settings,
        retry_policy: Optional[RetryPolicy] = None,
        monitor: Optional[ConnectivityMonitor] = None,
        persistence: Optional[ConversationPersistence] = None,
        search_channel: Optional[SearchChannel] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_notice: Optional[Callable[[Notice], None]] = None,
    ):
        self._provider = provider
        self._settings = cfg
        self._policy = retry_policy or RetryPolicy.from_settings(cfg)
        self._monitor = monitor
        self._persistence = persistence
        self._search_channel = search_channel
        self._sleep = sleep
        self._on_notice = on_notice
        self._conversation = Conversation()
        self._preferences = Preferences()
        self._busy = False
        self._retry_notice: Optional[Message] = None
        self._pending: Set[asyncio.Task] = set()
        self.attempts = 0
        self.last_error: Optional[AppError] = None
        self.banner: Optional[ErrorBanner] = None
        self.last_notice: Optional[Notice] = None

    # ---- 状态 ----

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def online(self) -> bool:
        return self._monitor.online if self._monitor else True

    def start(self) -> None:
        """加载偏好与（若允许）已保存的会话；否则以问候语开始。"""

        if self._persistence:
            self._preferences = self._persistence.load_preferences()
            if self._preferences.remember_conversation:
                for m in self._persistence.load_history():
                    self._conversation.append(m)
        if not len(self._conversation):
            self._conversation.append(Message(role="assistant", text=GREETING))

    def set_remember_conversation(self, remember: bool) -> Preferences:
        self._preferences = Preferences(remember_conversation=remember)
        if self._persistence:
            self._persistence.save_preferences(self._preferences)
            if remember:
                self._persistence.save_history(self._conversation, self._preferences)
            else:
                self._persistence.clear_history()
        return self._preferences

    def clear_conversation(self) -> None:
        self._conversation.clear()
        self._conversation.append(Message(role="assistant", text=GREETING))
        self.last_error = None
        self.banner = None
        if self._persistence:
            self._persistence.clear_history()
            self._persistence.save_history(self._conversation, self._preferences)

    def dismiss_banner(self) -> None:
        if self.banner and self.banner.dismissable:
            self.banner = None

    # ---- 发送 ----

    async def send(self, text: str) -> Message:
        """校验并发送一条用户消息，返回助手回复。

        Raises:
            ValidationError: 输入长度不合法或已有请求在进行中（不触网）。
            AppError: 离线、不可重试的失败，或重试耗尽。
        """
        trimmed = self._validate(text)
        self._ensure_online()
        history = self._conversation.history()
        user_msg = self._conversation.append(Message(role="user", text=trimmed))
        self._persist()
        req = self._build_request(history, user_msg.text)
        return await self._deliver(req, {"mode": "send", "user_message_id": user_msg.id})

    async def retry_last(self) -> Message:
        """手动重试：丢弃 error 消息后重新发送最后一条用户消息。"""

        self._ensure_idle()
        self._ensure_online()
        removed = self._conversation.discard_errors()
        last = self._conversation.last_user_message()
        if last is None:
            self._notify("There is no message to retry.")
            raise ValidationError(code="NOTHING_TO_RETRY", message="no user message to retry")
        self.banner = None
        history: List[Message] = []
        for m in self._conversation.history():
            if m.id == last.id:
                break
            history.append(m)
        self._persist()
        req = self._build_request(history, last.text)
        return await self._deliver(
            req,
            {"mode": "manual_retry", "user_message_id": last.id, "discarded_errors": removed},
        )

    async def wait_for_notifications(self) -> None:
        """等待已安排的地图搜索通知完成。"""

        if self._pending:
            await asyncio.gather(*list(self._pending))

    # ---- 内部实现 ----

    def _validate(self, text: str) -> str:
        self._ensure_idle()
        trimmed = (text or "").strip()
        if len(trimmed) < MIN_INPUT_LENGTH:
            self._notify("Please enter a bit more detail so I can assist you.")
            raise ValidationError(code="INVALID_INPUT", message="message too short")
        if len(trimmed) > MAX_INPUT_LENGTH:
            self._notify(f"Please keep your message under {MAX_INPUT_LENGTH} characters.")
            raise ValidationError(code="INVALID_INPUT", message="message too long")
        return trimmed

    def _ensure_idle(self) -> None:
        if self._busy:
            self._notify("Please wait for the current reply before sending another message.")
            raise ValidationError(code="REQUEST_IN_FLIGHT", message="a request is already in flight")

    def _ensure_online(self) -> None:
        if self.online:
            return
        err = make_error("network", details="health probe reports offline")
        self.last_error = err
        self.banner = ErrorBanner.from_error(err)
        logger.warning("Send refused while offline", extra={"extra": {"provider": self._provider.name}})
        raise err

    def _build_request(self, history: List[Message], user_text: str) -> ChatRequest:
        messages = [ChatMessage(role="system", content=load_system_prompt())]
        for m in history:
            messages.append(ChatMessage(role=m.role, content=m.text))
        messages.append(ChatMessage(role="user", content=user_text))
        return ChatRequest(
            model=self._settings.chat_model,
            messages=messages,
            temperature=self._settings.temperature,
            max_tokens=self._settings.max_tokens,
        )

    async def _deliver(self, req: ChatRequest, fields: Dict[str, Any]) -> Message:
        start_time = time.time()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "provider": self._provider.name,
        }
        self._log(logging.INFO, "Chat submission started", log_ctx, **fields)
        self._busy = True
        self.attempts = 0
        try:
            attempt = 1
            while True:
                self.attempts = attempt
                try:
                    reply = await self._call_provider(req)
                except AppError as err:
                    self._clear_retry_notice()
                    self._log(
                        logging.WARNING,
                        "Chat attempt failed",
                        log_ctx,
                        attempt=attempt,
                        kind=err.kind,
                        status_code=err.status_code,
                        details=err.details,
                    )
                    if not self._policy.should_retry(attempt, err.retryable):
                        self._fail(err, log_ctx, attempt)
                    attempt += 1
                    self._retry_notice = self._conversation.append(
                        Message(
                            role="assistant",
                            text=RETRYING_TEXT.format(attempt=attempt, max_attempts=self._policy.max_attempts),
                            status="pending",
                            transient=True,
                        )
                    )
                    await self._sleep(self._policy.delay_seconds(attempt))
                    continue

                self._clear_retry_notice()
                reply_msg = self._conversation.append(Message(role="assistant", text=reply))
                self.last_error = None
                self.banner = None
                self._persist()
                self._log(
                    logging.INFO,
                    "Chat submission completed",
                    log_ctx,
                    attempts=attempt,
                    elapsed_seconds=round(time.time() - start_time, 2),
                    assistant_message_id=reply_msg.id,
                )
                self._maybe_schedule_search(reply, log_ctx)
                return reply_msg
        finally:
            self._busy = False

    async def _call_provider(self, req: ChatRequest) -> str:
        try:
            reply = await asyncio.wait_for(self._provider.chat(req), timeout=self._settings.http_timeout)
        except asyncio.TimeoutError as e:
            raise classify_transport_error(e)
        if not isinstance(reply, str) or not reply.strip():
            raise malformed_reply_error()
        return reply.strip()

    def _fail(self, err: AppError, log_ctx: Dict[str, Any], attempt: int) -> NoReturn:
        self._conversation.append(Message(role="assistant", text=err.message, status="error"))
        self.last_error = err
        self.banner = ErrorBanner.from_error(err)
        self._persist()
        self._log(
            logging.ERROR,
            "Chat submission failed",
            log_ctx,
            attempts=attempt,
            kind=err.kind,
            retryable=err.retryable,
        )
        raise err

    def _clear_retry_notice(self) -> None:
        if self._retry_notice is not None:
            self._conversation.remove(self._retry_notice.id)
            self._retry_notice = None

    def _maybe_schedule_search(self, reply: str, log_ctx: Dict[str, Any]) -> None:
        if self._search_channel is None or not mentions_healthcare(reply):
            return
        self._log(logging.INFO, "Scheduling facility search", log_ctx)
        task = asyncio.create_task(self._notify_search())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify_search(self) -> None:
        await self._sleep(self._settings.search_notify_delay)
        await self._search_channel.publish(LocationSearchRequest())  # type: ignore[union-attr]

    def _persist(self) -> None:
        if self._persistence:
            self._persistence.save_history(self._conversation, self._preferences)

    def _notify(self, text: str) -> None:
        notice = Notice(text=text)
        self.last_notice = notice
        if self._on_notice:
            self._on_notice(notice)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
