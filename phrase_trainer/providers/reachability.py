from __future__ import annotations

import logging

import httpx

from phrase_trainer.providers.base import Reachability

log = logging.getLogger("phrase_trainer.content")


class HttpReachability(Reachability):
    """Treat the network as up when a HEAD request gets any HTTP answer."""

    def __init__(
        self,
        probe_url: str,
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.probe_url = probe_url
        self.timeout = timeout
        self.transport = transport

    async def is_reachable(self) -> bool:
        if not self.probe_url:
            # Nothing to probe; let the fetch itself decide
            return True
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                await client.head(self.probe_url, follow_redirects=True)
            return True
        except httpx.HTTPError as e:
            log.info("Reachability probe failed: %s", e)
            return False


class StaticReachability(Reachability):
    """Fixed answer; used when connectivity is known up front."""

    def __init__(self, online: bool = True):
        self.online = online

    async def is_reachable(self) -> bool:
        return self.online
