"""聊天端点抽象接口。

ChatClient 不直接依赖 HTTP 库，而是依赖此协议：

- 负责：将 ChatRequest 转成端点请求，并返回助手回复文本。
- 任何失败都必须以 AppError 抛出（已完成分类），由 ChatClient 决定是否重试。
"""

from typing import Optional, Protocol

from healthsync_core.domain.models import ChatRequest


class ChatProvider(Protocol):
    """聊天端点客户端协议。

    - name: 端点名称，用于日志。
    - health_url: 存活探测地址；为 None 时视为始终在线。
    - chat(req): 执行一次请求，返回去除首尾空白的回复文本。
    """

    name: str
    health_url: Optional[str]

    async def chat(self, req: ChatRequest) -> str:
        ...
