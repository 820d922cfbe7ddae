"""
Soft-Lock Manager

Advisory "who is editing this flight" markers:
- at most one lock row per flight
- every user can see every lock
- only the holder can refresh or release its lock until it expires
- rows older than the expiry disappear on the next cleanup pass

Nothing else is blocked by a lock. Flight updates never look at locks;
callers that want to warn a second editor ask holder() themselves.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Callable

from models.result import DbResult
from models.user import User
from database.backend import utcnow
from services.data_access import DataAccess

logger = logging.getLogger(__name__)

DEFAULT_LOCK_EXPIRY = timedelta(minutes=15)


class SoftLockManager:

    def __init__(self, data: DataAccess, expiry: timedelta = DEFAULT_LOCK_EXPIRY):
        self.data = data
        self.expiry = expiry

    async def list_locks(self) -> DbResult:
        return await self.data.locks.get_all()

    async def holder(self, flight_id: str) -> DbResult:
        """Current lock of a flight, None if free or expired"""
        result = await self.data.locks.get(flight_id)
        if result.ok and result.data is not None and result.data.is_expired(utcnow(), self.expiry):
            result.data = None
        return result

    async def acquire(self, flight_id: str, user: User) -> DbResult:
        """Take the lock, or refresh it if the caller already holds it"""
        result = await self.data.locks.upsert(flight_id, user)
        if result.ok:
            logger.info(f"Flight {flight_id} locked by {user.email}")
        return result

    async def release(self, flight_id: str, user: User) -> DbResult:
        result = await self.data.locks.delete(flight_id, user)
        if result.ok and result.data:
            logger.info(f"Flight {flight_id} unlocked by {user.email}")
        return result

    async def cleanup(self) -> DbResult:
        """Delete locks older than the expiry; data is the number removed"""
        return await self.data.locks.cleanup()


async def run_lock_cleanup(manager_factory: Callable[[], SoftLockManager], interval: float) -> None:
    """Periodic cleanup pass, run as a background task by the server"""
    while True:
        await asyncio.sleep(interval)
        result = await manager_factory().cleanup()
        if not result.ok:
            logger.warning(f"Flight lock cleanup failed: {result.error}")
