"""会话与偏好的持久化。

- 会话级存储（session）只保存最近 history_limit 条消息，且仅在
  rememberConversation 为 True 时写入。
- 持久存储（durable）保存偏好对象 {rememberConversation}。
- 存储不可用时跳过读写并记录日志，不影响聊天。
"""

from typing import List, Optional

from healthsync_core.config.settings import settings
from healthsync_core.domain.conversation import Conversation, KeyValueStore
from healthsync_core.domain.exceptions import BusinessError
from healthsync_core.domain.models import Message, Preferences
from healthsync_core.infrastructure.logging.logger import logger


HISTORY_KEY = "healthsync_ai_chat_history"
PREFERENCES_KEY = "healthsync_ai_preferences"


class ConversationPersistence:
    def __init__(
        self,
        session_store: Optional[KeyValueStore],
        durable_store: Optional[KeyValueStore],
        limit: Optional[int] = None,
    ):
        self._session = session_store
        self._durable = durable_store
        self._limit = limit or settings.history_limit

    @property
    def limit(self) -> int:
        return self._limit

    def load_preferences(self) -> Preferences:
        if not self._usable(self._durable):
            return Preferences()
        try:
            data = self._durable.get(PREFERENCES_KEY)  # type: ignore[union-attr]
        except BusinessError as e:
            logger.warning("Failed to read preferences", extra={"extra": {"error": e.message}})
            return Preferences()
        if not isinstance(data, dict):
            return Preferences()
        return Preferences.from_dict(data)

    def save_preferences(self, prefs: Preferences) -> None:
        if not self._usable(self._durable):
            return
        try:
            self._durable.set(PREFERENCES_KEY, prefs.to_dict())  # type: ignore[union-attr]
        except BusinessError as e:
            logger.warning("Failed to write preferences", extra={"extra": {"error": e.message}})

    def load_history(self) -> List[Message]:
        if not self._usable(self._session):
            return []
        try:
            data = self._session.get(HISTORY_KEY)  # type: ignore[union-attr]
        except BusinessError as e:
            logger.warning("Failed to read history", extra={"extra": {"error": e.message}})
            return []
        if not isinstance(data, list):
            return []
        messages: List[Message] = []
        seen: set[str] = set()
        for item in data[-self._limit:]:
            try:
                msg = Message.from_dict(item)
            except (KeyError, TypeError, ValueError):
                continue
            if msg.id in seen:
                continue
            seen.add(msg.id)
            messages.append(msg)
        return messages

    def save_history(self, conversation: Conversation, prefs: Preferences) -> None:
        if not prefs.remember_conversation:
            return
        if not self._usable(self._session):
            return
        tail = [m.to_dict() for m in conversation.tail(self._limit)]
        try:
            self._session.set(HISTORY_KEY, tail)  # type: ignore[union-attr]
        except BusinessError as e:
            logger.warning("Failed to write history", extra={"extra": {"error": e.message}})

    def clear_history(self) -> None:
        if not self._usable(self._session):
            return
        try:
            self._session.remove(HISTORY_KEY)  # type: ignore[union-attr]
        except BusinessError as e:
            logger.warning("Failed to clear history", extra={"extra": {"error": e.message}})

    @staticmethod
    def _usable(store: Optional[KeyValueStore]) -> bool:
        if store is None:
            return False
        if not store.available():
            logger.info("Storage unavailable", extra={"extra": {"lifetime": getattr(store, "lifetime", "?")}})
            return False
        return True
