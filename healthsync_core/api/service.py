"""对外 API 服务模块。

提供简化的函数接口供宿主应用调用，负责把各组件装配在一起：
聊天端点、存活探测、会话持久化，以及（可选的）医疗机构定位。
"""

from typing import Any, Dict, List, Optional

from healthsync_core.chat.client import ChatClient
from healthsync_core.chat.connectivity import ConnectivityMonitor
from healthsync_core.chat.persistence import ConversationPersistence
from healthsync_core.config.settings import settings
from healthsync_core.domain.events import SearchChannel
from healthsync_core.domain.exceptions import AppError
from healthsync_core.infrastructure.logging.logger import logger
from healthsync_core.infrastructure.storage.kv_store import JsonFileKeyValueStore, MemoryKeyValueStore
from healthsync_core.locator.geolocation import Geolocator
from healthsync_core.locator.places_client import PlacesClient
from healthsync_core.locator.service import FacilityLocator
from healthsync_core.providers import create_provider


_client: Optional[ChatClient] = None
_locator: Optional[FacilityLocator] = None


def build_chat_client(
    provider_name: Optional[str] = None,
    geolocator: Optional[Geolocator] = None,
) -> ChatClient:
    """装配一个新的 ChatClient。

    传入 geolocator 时同时创建 FacilityLocator，并通过同一个
    SearchChannel 接收聊天端发出的搜索请求。
    """
    global _locator
    provider = create_provider(provider_name)
    channel = SearchChannel()
    if geolocator is not None:
        _locator = FacilityLocator(PlacesClient(settings), geolocator, search_channel=channel)
    persistence = ConversationPersistence(
        session_store=MemoryKeyValueStore(),
        durable_store=JsonFileKeyValueStore(settings.storage_root),
        limit=settings.history_limit,
    )
    client = ChatClient(
        provider,
        monitor=ConnectivityMonitor(provider.health_url),
        persistence=persistence,
        search_channel=channel,
    )
    client.start()
    return client


def get_default_client() -> ChatClient:
    """获取默认的 ChatClient 实例（单例）。"""
    global _client
    if _client is None:
        _client = build_chat_client()
    return _client


def get_locator() -> Optional[FacilityLocator]:
    return _locator


def _serialize(client: ChatClient) -> List[Dict[str, Any]]:
    return [
        {
            "id": m.id,
            "role": m.role,
            "text": m.text,
            "timestamp": m.timestamp.isoformat(),
            "status": m.status,
        }
        for m in client.conversation
    ]


async def send_chat_message(text: str) -> Dict[str, Any]:
    """发送一条用户消息。

    Returns:
        包含助手回复与当前会话的字典

    Raises:
        各种 domain.exceptions 中定义的异常
    """
    client = get_default_client()
    try:
        reply = await client.send(text)
    except AppError as e:
        logger.error(f"Chat failed: {e.kind}", extra={"extra": {
            "kind": e.kind,
            "retryable": e.retryable,
            "status_code": e.status_code,
        }})
        raise
    return {
        "reply": {"id": reply.id, "text": reply.text, "timestamp": reply.timestamp.isoformat()},
        "messages": _serialize(client),
    }


async def retry_last_message() -> Dict[str, Any]:
    client = get_default_client()
    reply = await client.retry_last()
    return {
        "reply": {"id": reply.id, "text": reply.text, "timestamp": reply.timestamp.isoformat()},
        "messages": _serialize(client),
    }


def set_remember_conversation(remember: bool) -> Dict[str, Any]:
    prefs = get_default_client().set_remember_conversation(remember)
    return prefs.to_dict()


def get_conversation_messages() -> List[Dict[str, Any]]:
    return _serialize(get_default_client())
