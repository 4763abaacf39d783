"""存活探测：定期 GET /health，维护 online/offline 标记。"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional

import httpx

from healthsync_core.config.settings import settings
from healthsync_core.infrastructure.logging.logger import logger


class ConnectivityMonitor:
    """周期性存活探测。

    任何非 2xx 响应、超时或连接失败都视为离线。health_url 为 None
    （例如远程 LLM 端点没有探测地址）时始终在线。探测失败只更新标记，
    不会取消正在进行的聊天请求。
    """

    def __init__(
        self,
        health_url: Optional[str],
        cfg=settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._health_url = health_url
        self._settings = cfg
        self._sleep = sleep
        self._online = True
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[[bool], None]] = []

    @property
    def online(self) -> bool:
        return self._online

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)

    async def probe(self) -> bool:
        if not self._health_url:
            self._update(True)
            return True
        try:
            async with httpx.AsyncClient(timeout=self._settings.health_timeout, trust_env=False) as client:
                resp = await client.get(self._health_url)
            ok = 200 <= resp.status_code < 300
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info("Health probe failed", extra={"extra": {"url": self._health_url, "error": str(e)}})
            ok = False
        self._update(ok)
        return ok

    async def run(self, max_probes: Optional[int] = None) -> None:
        count = 0
        while max_probes is None or count < max_probes:
            await self.probe()
            count += 1
            if max_probes is not None and count >= max_probes:
                break
            await self._sleep(self._settings.probe_interval)

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self.run())
        return self._task  # type: ignore[return-value]

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def _update(self, ok: bool) -> None:
        if ok == self._online:
            return
        self._online = ok
        logger.info(
            "Connectivity changed",
            extra={"extra": {"online": ok, "url": self._health_url}},
        )
        for listener in list(self._listeners):
            try:
                listener(ok)
            except Exception:
                logger.exception("Connectivity listener failed", extra={"extra": {"online": ok}})
