"""聊天端点配置。

两类端点共用同一套请求/响应格式（chat/completions 风格）：

- local：自带的知识库代理，无需密钥，提供 /health 供存活探测。
- openai：远程 LLM API，需要 Bearer 密钥，没有存活探测端点。
"""

from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass
class EndpointConfig:
    """单个聊天端点的配置。"""

    name: str
    base_url: str
    chat_path: str
    health_path: Optional[str]
    requires_api_key: bool = False


LOCAL_CONFIG = EndpointConfig(
    name="local",
    base_url="http://localhost:3001",
    chat_path="/api/chat",
    health_path="/health",
)

OPENAI_CONFIG = EndpointConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    chat_path="/chat/completions",
    health_path=None,
    requires_api_key=True,
)


ENDPOINT_REGISTRY: Mapping[str, EndpointConfig] = {
    "local": LOCAL_CONFIG,
    "openai": OPENAI_CONFIG,
}


def get_endpoint_config(name: str) -> EndpointConfig:
    """根据名称获取 EndpointConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in ENDPOINT_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown endpoint: {name!r}")
