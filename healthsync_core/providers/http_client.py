"""chat/completions 风格端点的 HTTP 适配器。

- URL: {base_url}{chat_path}
- 认证: Authorization: Bearer <api_key>（仅在配置了密钥时发送）
- 成功: {"choices": [{"message": {"content": ...}}]}
- 失败: 非 2xx 状态 + {"error": {"message": ...}}
"""

from typing import Any, Dict, Optional

import httpx

from healthsync_core.chat.errors import (
    classify_status,
    classify_transport_error,
    make_error,
    malformed_reply_error,
)
from healthsync_core.config.settings import settings
from healthsync_core.domain.models import ChatRequest
from healthsync_core.providers.registry import EndpointConfig


class HttpChatProvider:
    """通用聊天端点客户端实现。"""

    def __init__(self, endpoint: EndpointConfig, cfg=settings, base_url: Optional[str] = None):
        self._endpoint = endpoint
        self._settings = cfg
        self._base_url = (base_url or endpoint.base_url).rstrip("/")
        self.name = endpoint.name

    @property
    def chat_url(self) -> str:
        return f"{self._base_url}{self._endpoint.chat_path}"

    @property
    def health_url(self) -> Optional[str]:
        if not self._endpoint.health_path:
            return None
        return f"{self._base_url}{self._endpoint.health_path}"

    async def chat(self, req: ChatRequest) -> str:
        api_key = getattr(self._settings, "chat_api_key", None)
        if self._endpoint.requires_api_key and not api_key:
            raise make_error("auth", details=f"chat_api_key not set for {self.name}")
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(self.chat_url, json=req.to_payload(), headers=headers)
        except httpx.RequestError as e:
            # 超时（httpx.TimeoutException）也是 RequestError 的子类
            raise classify_transport_error(e)
        if not 200 <= resp.status_code < 300:
            raise classify_status(resp.status_code, details=self._error_detail(resp))
        try:
            data = resp.json()
        except ValueError as e:
            raise malformed_reply_error(f"invalid JSON: {e}")
        return self._parse_reply(data)

    def _parse_reply(self, data: Any) -> str:
        if not isinstance(data, dict):
            raise malformed_reply_error("response is not an object")
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise malformed_reply_error("no choices in response")
        msg = choices[0].get("message") or {}
        content = msg.get("content") if isinstance(msg, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise malformed_reply_error()
        return content.strip()

    @staticmethod
    def _error_detail(resp: httpx.Response) -> str:
        try:
            payload: Dict[str, Any] = resp.json()
        except ValueError:
            return (resp.text or "")[:200]
        err = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        return (resp.text or "")[:200]
