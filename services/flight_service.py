"""
Flight Service - create / edit / cancel / delete flows

Each successful create or update is followed by one audit entry. Cancelling
is an update of the status field, so it is audited the same way.
"""

import logging
from typing import Optional

from fastapi import Depends

from database.backend import to_naive_utc
from models.flight import FlightCreate, FlightStatus, FlightUpdate
from models.result import DbResult, ErrorKind
from models.user import User
from services.audit_recorder import AuditRecorder
from services.data_access import DataAccess, get_data_access
from services.flight_filters import FlightFilter, filter_flights

logger = logging.getLogger(__name__)

END_BEFORE_START_MESSAGE = "End date cannot be before start date."


class FlightService:

    def __init__(self, data: DataAccess, recorder: Optional[AuditRecorder] = None):
        self.data = data
        self.recorder = recorder or AuditRecorder(data.audit_logs)

    async def list_flights(self, flight_filter: Optional[FlightFilter] = None) -> DbResult:
        result = await self.data.flights.get_all()
        if result.ok and flight_filter is not None:
            result.data = filter_flights(result.data, flight_filter)
        return result

    async def get_flight(self, flight_id: str) -> DbResult:
        return await self.data.flights.get_by_id(flight_id)

    async def create_flight(self, flight: FlightCreate, user: User) -> DbResult:
        if to_naive_utc(flight.end_date) < to_naive_utc(flight.start_date):
            return DbResult.failure(END_BEFORE_START_MESSAGE, ErrorKind.INVALID)

        payload = flight.dict()
        payload["created_by"] = user.id

        result = await self.data.flights.create(payload)
        if not result.ok:
            return result

        logger.info(f"Flight {result.data.id} ({result.data.tail_number}) created by {user.email}")
        await self.recorder.record_create(result.data, user)
        return result

    async def update_flight(self, flight_id: str, changes: FlightUpdate, user: User) -> DbResult:
        submitted = {key: to_naive_utc(value) for key, value in changes.dict(exclude_unset=True).items()}

        previous = await self.data.flights.get_by_id(flight_id)
        if not previous.ok:
            return previous
        if not submitted:
            return previous

        start = submitted.get("start_date", previous.data.start_date)
        end = submitted.get("end_date", previous.data.end_date)
        if end < start:
            return DbResult.failure(END_BEFORE_START_MESSAGE, ErrorKind.INVALID)

        result = await self.data.flights.update(flight_id, submitted)
        if not result.ok:
            return result

        logger.info(f"Flight {flight_id} updated by {user.email}")
        await self.recorder.record_update(flight_id, previous.data, submitted, user)
        return result

    async def cancel_flight(self, flight_id: str, user: User) -> DbResult:
        return await self.update_flight(flight_id, FlightUpdate(status=FlightStatus.CANCELLED), user)

    async def delete_flight(self, flight_id: str, user: User) -> DbResult:
        """Delete a flight; its tasks, audit entries and lock go with it"""
        result = await self.data.flights.delete(flight_id)
        if result.ok:
            logger.info(f"Flight {flight_id} deleted by {user.email}")
        return result


async def get_flight_service(data: DataAccess = Depends(get_data_access)) -> FlightService:
    return FlightService(data)
