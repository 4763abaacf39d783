"""HealthSync Core 顶层包。

该包提供健康咨询聊天组件的核心实现，
包括配置加载、领域模型、聊天端点适配、发送/重试协议、
会话持久化、存活探测、医疗机构定位与本地知识库服务。
"""

from healthsync_core.chat.client import ChatClient
from healthsync_core.domain.exceptions import AppError

__all__ = ["ChatClient", "AppError"]
