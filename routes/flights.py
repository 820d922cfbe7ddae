from fastapi import APIRouter, Depends, Query, status
from datetime import datetime
from typing import List, Optional
import logging

from models.audit_log import AuditLog
from models.flight import Flight, FlightCreate, FlightUpdate
from models.user import User
from routes.common import unwrap
from services.auth_deps import get_current_user
from services.data_access import DataAccess, get_data_access
from services.flight_filters import FlightFilter
from services.flight_service import FlightService, get_flight_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/flights", tags=["flights"])

@router.get("", response_model=List[Flight])
async def list_flights(
    company_id: Optional[str] = Query(None),
    tail_number: Optional[str] = Query(None),
    start_from: Optional[datetime] = Query(None),
    end_until: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    service: FlightService = Depends(get_flight_service)
):
    """Flights sorted by start date, optionally filtered"""
    flight_filter = FlightFilter(
        company_id=company_id,
        tail_number=tail_number,
        start_from=start_from,
        end_until=end_until
    )
    return unwrap(await service.list_flights(None if flight_filter.is_empty else flight_filter))

@router.post("", response_model=Flight, status_code=status.HTTP_201_CREATED)
async def create_flight(
    flight: FlightCreate,
    current_user: User = Depends(get_current_user),
    service: FlightService = Depends(get_flight_service)
):
    """Create a flight for the current user"""
    return unwrap(await service.create_flight(flight, current_user))

@router.get("/{flight_id}", response_model=Flight)
async def get_flight(
    flight_id: str,
    current_user: User = Depends(get_current_user),
    service: FlightService = Depends(get_flight_service)
):
    return unwrap(await service.get_flight(flight_id))

@router.put("/{flight_id}", response_model=Flight)
async def update_flight(
    flight_id: str,
    flight_update: FlightUpdate,
    current_user: User = Depends(get_current_user),
    service: FlightService = Depends(get_flight_service)
):
    """Update a flight; the previous state is kept in the audit log"""
    return unwrap(await service.update_flight(flight_id, flight_update, current_user))

@router.post("/{flight_id}/cancel", response_model=Flight)
async def cancel_flight(
    flight_id: str,
    current_user: User = Depends(get_current_user),
    service: FlightService = Depends(get_flight_service)
):
    """Cancel a flight (status change, the flight is kept)"""
    return unwrap(await service.cancel_flight(flight_id, current_user))

@router.delete("/{flight_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_flight(
    flight_id: str,
    current_user: User = Depends(get_current_user),
    service: FlightService = Depends(get_flight_service)
):
    """Delete a flight with its tasks, audit entries and lock"""
    unwrap(await service.delete_flight(flight_id, current_user))
    return None

@router.get("/{flight_id}/audit-logs", response_model=List[AuditLog])
async def get_flight_audit_logs(
    flight_id: str,
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    """Audit history of a flight, most recent first"""
    return unwrap(await data.audit_logs.get_by_flight(flight_id))
