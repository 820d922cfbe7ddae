from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional
import logging

from database.backend import utcnow
from models.user import User
from routes.common import unwrap
from services.auth_deps import get_current_user
from services.data_access import DataAccess, get_data_access
from services.flight_filters import (
    CalendarEvent,
    CalendarView,
    FlightFilter,
    busiest_day_count,
    calendar_events,
    events_in_view,
    filter_flights,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/calendar", tags=["calendar"])


class CalendarResponse(BaseModel):
    view: CalendarView
    date: datetime
    events: List[CalendarEvent]
    busiest_day_count: int
    total_flights: int
    filtered_flights: int


@router.get("", response_model=CalendarResponse)
async def get_calendar(
    view: CalendarView = Query(CalendarView.MONTH),
    date: Optional[datetime] = Query(None),
    company_id: Optional[str] = Query(None),
    tail_number: Optional[str] = Query(None),
    start_from: Optional[datetime] = Query(None),
    end_until: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    data: DataAccess = Depends(get_data_access)
):
    """Calendar events of the visible window, with task status badges"""
    anchor = date or utcnow()
    flights = unwrap(await data.flights.get_all())

    filtered = filter_flights(flights, FlightFilter(
        company_id=company_id,
        tail_number=tail_number,
        start_from=start_from,
        end_until=end_until
    ))

    tasks = []
    for flight in filtered:
        result = await data.tasks.get_by_flight(flight.id)
        if result.ok:
            tasks.extend(result.data)
        else:
            logger.warning(f"Could not load tasks for flight {flight.id}: {result.error}")

    events = calendar_events(filtered, tasks)
    return CalendarResponse(
        view=view,
        date=anchor,
        events=events_in_view(events, view, anchor),
        busiest_day_count=busiest_day_count(events, anchor),
        total_flights=len(flights),
        filtered_flights=len(filtered)
    )
