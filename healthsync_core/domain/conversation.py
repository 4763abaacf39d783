from typing import Any, Iterator, List, Optional, Protocol

from .models import Message


class Conversation:
    """按追加顺序保存消息，保证 id 唯一。"""

    def __init__(self, messages: Optional[List[Message]] = None):
        self._messages: List[Message] = []
        for m in messages or []:
            self.append(m)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def append(self, message: Message) -> Message:
        if any(m.id == message.id for m in self._messages):
            raise ValueError(f"duplicate message id: {message.id}")
        self._messages.append(message)
        return message

    def remove(self, message_id: str) -> None:
        self._messages = [m for m in self._messages if m.id != message_id]

    def discard_errors(self) -> int:
        before = len(self._messages)
        self._messages = [m for m in self._messages if m.status != "error"]
        return before - len(self._messages)

    def last_user_message(self) -> Optional[Message]:
        for m in reversed(self._messages):
            if m.role == "user":
                return m
        return None

    def history(self) -> List[Message]:
        """可以作为上下文发给端点的消息（排除 error 与临时消息）。"""

        return [m for m in self._messages if m.status != "error" and not m.transient]

    def tail(self, limit: int) -> List[Message]:
        durable = [m for m in self._messages if not m.transient]
        return durable[-limit:]

    def clear(self) -> None:
        self._messages = []


class KeyValueStore(Protocol):
    """键值存储端口。

    lifetime 为 "session"（会话结束即清空）或 "durable"（跨会话保留）。
    available() 为能力探测：不可用时调用方应跳过读写，而不是报错。
    """

    lifetime: str

    def available(self) -> bool:
        ...

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...
