"""
Flight lock routes

Explicit acquire / release of the advisory edit lock. Editing a flight does
not call these by itself; a client that wants to signal "I am editing" does.
"""

from fastapi import APIRouter, Depends
from datetime import timedelta
from typing import List, Optional
import logging

from config import get_settings
from models.flight_lock import FlightLock
from models.user import User
from routes.common import unwrap
from services.auth_deps import get_current_user
from services.data_access import DataAccess, get_data_access
from services.lock_manager import SoftLockManager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["flight-locks"])


async def get_lock_manager(data: DataAccess = Depends(get_data_access)) -> SoftLockManager:
    settings = get_settings()
    return SoftLockManager(data, expiry=timedelta(minutes=settings.lock_expiry_minutes))


@router.get("/flight-locks", response_model=List[FlightLock])
async def list_flight_locks(
    current_user: User = Depends(get_current_user),
    manager: SoftLockManager = Depends(get_lock_manager)
):
    """Every lock currently recorded, whoever holds it"""
    return unwrap(await manager.list_locks())


@router.get("/flights/{flight_id}/lock", response_model=Optional[FlightLock])
async def get_flight_lock(
    flight_id: str,
    current_user: User = Depends(get_current_user),
    manager: SoftLockManager = Depends(get_lock_manager)
):
    """Active lock of a flight, null when nobody is editing it"""
    return unwrap(await manager.holder(flight_id))


@router.post("/flights/{flight_id}/lock", response_model=FlightLock)
async def acquire_flight_lock(
    flight_id: str,
    current_user: User = Depends(get_current_user),
    manager: SoftLockManager = Depends(get_lock_manager)
):
    return unwrap(await manager.acquire(flight_id, current_user))


@router.delete("/flights/{flight_id}/lock")
async def release_flight_lock(
    flight_id: str,
    current_user: User = Depends(get_current_user),
    manager: SoftLockManager = Depends(get_lock_manager)
):
    released = unwrap(await manager.release(flight_id, current_user))
    return {"released": released}
