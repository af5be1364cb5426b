"""Backend connectivity tracking"""

import asyncio
import inspect
import logging
from datetime import datetime
from typing import Callable, Optional

from .. import config
from ..models import ConnectionStatus
from ..storage.local_store import LocalStore, LAST_SYNC_KEY

logger = logging.getLogger(__name__)


class ConnectionMonitor:
    """Probes the Realtime Database and signals when connectivity returns.

    ``on_online`` callbacks fire only on an offline -> online transition, not
    on the first successful probe.
    """

    def __init__(self, db, probe_path: str, store: Optional[LocalStore] = None):
        self.db = db
        self.probe_path = probe_path
        self.store = store
        self._online: Optional[bool] = None
        self._callbacks: list[Callable] = []
        self._running = False

        cached = store.get_json(LAST_SYNC_KEY) if store else None
        self.last_sync_time = datetime.fromtimestamp(cached / 1000) if isinstance(cached, (int, float)) else None

    @property
    def is_online(self) -> bool:
        """Unknown state counts as online so the first write is attempted"""
        return self._online is not False

    @property
    def status(self) -> ConnectionStatus:
        return ConnectionStatus(is_connected=self._online is True, last_sync_time=self.last_sync_time)

    def on_online(self, callback: Callable):
        self._callbacks.append(callback)

    async def set_online(self, online: bool):
        previous = self._online
        self._online = online

        if online:
            self.last_sync_time = datetime.now()
            if self.store:
                self.store.set_json(LAST_SYNC_KEY, int(self.last_sync_time.timestamp() * 1000))

        if previous is False and online:
            logger.info("Connection restored")
            for callback in self._callbacks:
                try:
                    result = callback()
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(f"Reconnect handler failed: {e}", exc_info=True)
        elif previous is not False and not online:
            logger.warning("Connection lost - writes will be queued until it returns")

    async def probe(self) -> bool:
        """Single reachability check against the backend"""
        try:
            await self.db.get(self.probe_path)
            online = True
        except Exception as e:
            logger.debug(f"Connectivity probe failed: {e}")
            online = False
        await self.set_online(online)
        return online

    async def run(self, interval: Optional[float] = None):
        """Probe periodically until stop()"""
        interval = interval or config.CONNECTION_PROBE_INTERVAL_S
        self._running = True
        logger.info("Connection monitor started")

        while self._running:
            await self.probe()
            await asyncio.sleep(interval)

    def stop(self):
        self._running = False
