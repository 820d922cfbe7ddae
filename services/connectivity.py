import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """
    Tracks whether the database is reachable.

    Operations started while offline wait on the "restored" signal instead of
    burning retry attempts.
    """

    def __init__(self, online: bool = True):
        self._online = asyncio.Event()
        if online:
            self._online.set()

    @property
    def is_online(self) -> bool:
        return self._online.is_set()

    def mark_online(self) -> None:
        if not self._online.is_set():
            logger.info("Connection restored")
            self._online.set()

    def mark_offline(self) -> None:
        if self._online.is_set():
            logger.warning("Connection lost")
            self._online.clear()

    async def wait_until_online(self, timeout: Optional[float] = None) -> bool:
        """Suspend until connectivity returns; False if the timeout ran out first"""
        if self._online.is_set():
            return True
        try:
            await asyncio.wait_for(self._online.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def watch(self, probe: Callable[[], Awaitable[bool]], interval: float) -> None:
        """Poll probe() forever, flipping the state on each change"""
        while True:
            if await probe():
                self.mark_online()
            else:
                self.mark_offline()
            await asyncio.sleep(interval)


connectivity = ConnectivityMonitor()
