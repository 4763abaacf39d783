"""聊天端点集成层。

该包下的模块负责：
- 定义端点抽象接口 (base)。
- 维护端点配置 (registry)。
- 提供 HTTP 实现 (http_client)。
"""

from typing import Optional

from healthsync_core.config.settings import settings
from healthsync_core.providers.base import ChatProvider
from healthsync_core.providers.http_client import HttpChatProvider
from healthsync_core.providers.registry import get_endpoint_config


def create_provider(name: Optional[str] = None) -> ChatProvider:
    """根据名称创建端点客户端，默认取配置中的 default_provider。"""

    provider_name = (name or getattr(settings, "default_provider", "local")).lower()
    endpoint = get_endpoint_config(provider_name)
    if endpoint.name == "openai":
        return HttpChatProvider(endpoint, settings, base_url=getattr(settings, "openai_base_url", None))
    return HttpChatProvider(endpoint, settings, base_url=getattr(settings, "local_base_url", None))

