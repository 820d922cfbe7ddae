"""
In-memory flight filtering and calendar helpers.

Works on lists already fetched through the facade; no database access here.
"""

import calendar
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from database.backend import to_naive_utc
from models.flight import Flight, FlightStatus, format_tail_number
from models.task import FlightTask


class FlightFilter(BaseModel):
    company_id: Optional[str] = None
    tail_number: Optional[str] = None
    start_from: Optional[datetime] = None
    end_until: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return not any([self.company_id, self.tail_number, self.start_from, self.end_until])


class TaskStatus(str, Enum):
    CANCELLED = "cancelled"
    TASKS_COMPLETE = "tasks_complete"
    OPEN_TASKS = "open_tasks"


class CalendarView(str, Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


class CalendarEvent(BaseModel):
    flight_id: str
    title: str
    start: datetime
    end: datetime
    tail_number: str
    company_name: Optional[str] = None
    status: Optional[TaskStatus] = None


def filter_flights(flights: Iterable[Flight], flight_filter: FlightFilter) -> List[Flight]:
    """Keep flights matching every filter that is set"""
    start_from = to_naive_utc(flight_filter.start_from)
    end_until = to_naive_utc(flight_filter.end_until)
    tail_number = format_tail_number(flight_filter.tail_number) if flight_filter.tail_number else None

    matches = []
    for flight in flights:
        if flight_filter.company_id and flight.company_id != flight_filter.company_id:
            continue
        if tail_number and flight.tail_number != tail_number:
            continue
        if start_from and to_naive_utc(flight.start_date) < start_from:
            continue
        if end_until and to_naive_utc(flight.end_date) > end_until:
            continue
        matches.append(flight)
    return matches


def flight_task_status(flight: Flight, tasks: Iterable[FlightTask]) -> Optional[TaskStatus]:
    """
    Badge shown next to a flight:
    cancelled flights first, then nothing when there are no tasks,
    otherwise whether every task is done.
    """
    if flight.status == FlightStatus.CANCELLED.value:
        return TaskStatus.CANCELLED

    flight_tasks = [t for t in tasks if t.flight_id == flight.id]
    if not flight_tasks:
        return None
    if all(t.completed for t in flight_tasks):
        return TaskStatus.TASKS_COMPLETE
    return TaskStatus.OPEN_TASKS


def calendar_events(flights: Iterable[Flight], tasks: Iterable[FlightTask] = ()) -> List[CalendarEvent]:
    tasks = list(tasks)
    events = []
    for flight in flights:
        company = flight.company_name or ""
        events.append(CalendarEvent(
            flight_id=flight.id,
            title=f"{company} - {flight.tail_number}",
            start=to_naive_utc(flight.start_date),
            end=to_naive_utc(flight.end_date),
            tail_number=flight.tail_number,
            company_name=flight.company_name,
            status=flight_task_status(flight, tasks),
        ))
    return events


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


def view_window(view: CalendarView, anchor: datetime) -> Tuple[datetime, datetime]:
    """Inclusive [start, end] of the month, week (Sunday first) or day around anchor"""
    anchor = to_naive_utc(anchor)
    if view == CalendarView.MONTH:
        last_day = calendar.monthrange(anchor.year, anchor.month)[1]
        return _start_of_day(anchor.replace(day=1)), _end_of_day(anchor.replace(day=last_day))
    if view == CalendarView.WEEK:
        week_start = _start_of_day(anchor) - timedelta(days=(anchor.weekday() + 1) % 7)
        return week_start, _end_of_day(week_start + timedelta(days=6))
    return _start_of_day(anchor), _end_of_day(anchor)


def events_in_view(events: Iterable[CalendarEvent], view: CalendarView, anchor: datetime) -> List[CalendarEvent]:
    window_start, window_end = view_window(view, anchor)
    return [e for e in events if e.start <= window_end and e.end >= window_start]


def busiest_day_count(events: Iterable[CalendarEvent], anchor: datetime) -> int:
    """Largest number of events touching a single day of the anchor's month"""
    events = list(events)
    anchor = to_naive_utc(anchor)
    last_day = calendar.monthrange(anchor.year, anchor.month)[1]

    counts: Dict[int, int] = {}
    for day in range(1, last_day + 1):
        date = anchor.replace(day=day)
        day_start, day_end = _start_of_day(date), _end_of_day(date)
        counts[day] = sum(1 for e in events if e.start <= day_end and e.end >= day_start)
    return max(counts.values(), default=0)
