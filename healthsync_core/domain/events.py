"""聊天组件与医疗机构定位组件之间的搜索通道。

两个组件在构造时拿到同一个 SearchChannel：聊天端 publish，定位端 subscribe。
通道尽力投递：订阅者抛出的异常只记录日志，不会影响聊天流程。
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Literal, Union

from healthsync_core.infrastructure.logging.logger import logger


FacilityFilter = Literal["all", "hospital", "doctor", "pharmacy", "health"]


@dataclass(frozen=True)
class LocationSearchRequest:
    facility_type: FacilityFilter = "all"
    radius_m: int = 5000


Subscriber = Callable[[LocationSearchRequest], Union[None, Awaitable[None]]]


class SearchChannel:
    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, handler: Subscriber) -> None:
        self._subscribers.append(handler)

    def unsubscribe(self, handler: Subscriber) -> None:
        self._subscribers = [h for h in self._subscribers if h is not handler]

    @property
    def has_subscribers(self) -> bool:
        return bool(self._subscribers)

    async def publish(self, request: LocationSearchRequest) -> int:
        """依次通知订阅者，返回成功处理的订阅者数量。"""

        delivered = 0
        for handler in list(self._subscribers):
            try:
                result = handler(request)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "Search subscriber failed",
                    extra={"extra": {"error": str(exc), "facility_type": request.facility_type}},
                )
        return delivered
