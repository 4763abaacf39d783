"""统一的对话与请求数据模型。

本模块定义了聊天客户端内部共享的标准数据结构：

- Message: 会话中的一条消息（user/assistant），带状态。
- ChatMessage: 发往聊天端点的一条 {role, content}。
- ChatRequest: 发往聊天端点的完整请求体。
- Preferences: 用户偏好（是否记住会话）。

端点适配层只依赖 ChatRequest，并负责把它转换为 JSON 请求体。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal
from uuid import uuid4


# 会话内的消息角色；system 只出现在请求体中
Role = Literal["user", "assistant"]
PayloadRole = Literal["system", "user", "assistant"]
MessageStatus = Literal["sent", "pending", "error"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Message:
    """会话中的一条消息。

    - id: 不透明标识符，会话内唯一。
    - status: 创建时确定；pending 只用于临时消息。
    - transient: “正在重试”之类的临时状态消息，尝试结束后即移除，
      不会被持久化，也不会作为历史发给端点。
    """

    role: Role
    text: str
    status: MessageStatus = "sent"
    id: str = field(default_factory=lambda: f"m-{uuid4().hex}")
    timestamp: datetime = field(default_factory=_utcnow)
    transient: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "text": self.text,
            "timestamp": _isoformat(self.timestamp),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            id=data["id"],
            role=data["role"],
            text=data.get("text") or "",
            status=data.get("status") or "sent",
            timestamp=datetime.fromisoformat(str(data["timestamp"]).replace("Z", "+00:00")),
        )


@dataclass
class ChatMessage:
    """请求体中的一条消息。"""

    role: PayloadRole
    content: str


@dataclass
class ChatRequest:
    """一次完整的聊天请求。

    ChatClient 过滤历史后生成 ChatRequest，再交给具体 ChatProvider。
    重试时原样复用同一个对象。
    """

    model: str
    messages: List[ChatMessage]
    temperature: float = 0.7
    max_tokens: int = 500

    def to_payload(self) -> Dict[str, Any]:
        return {
            "messages": [{"role": m.role, "content": m.content} for m in self.messages],
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


@dataclass
class Preferences:
    """用户偏好，保存在持久存储中。"""

    remember_conversation: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"rememberConversation": self.remember_conversation}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Preferences":
        return cls(remember_conversation=bool(data.get("rememberConversation", False)))
