"""
Flight Model

A flight is one aircraft movement: a tail number flying from one airport to
another within a [start_date, end_date) window, owned by a company.

Collection: flights

RULES:
- end_date >= start_date
- start_airport != end_airport
- status is "active" or "cancelled" (cancellation is not deletion)
- No two active flights of the same tail number may overlap
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from enum import Enum


class FlightStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


def format_tail_number(tail_number: str) -> str:
    """Format tail number to uppercase (N123AB, C-GABC)"""
    return tail_number.upper().strip()


def format_airport_code(code: str) -> str:
    return code.upper().strip()


class FlightBase(BaseModel):
    tail_number: str = Field(..., min_length=1, description="Aircraft registration")
    start_date: datetime
    end_date: datetime
    start_airport: str = Field(..., min_length=1)
    end_airport: str = Field(..., min_length=1)
    notes: str = ""
    company_id: Optional[str] = None
    status: FlightStatus = FlightStatus.ACTIVE

    @field_validator("tail_number")
    @classmethod
    def _tail_upper(cls, v):
        v = format_tail_number(v)
        if not v:
            raise ValueError("Tail number is required")
        return v

    @field_validator("start_airport", "end_airport")
    @classmethod
    def _airport_upper(cls, v):
        v = format_airport_code(v)
        if not v:
            raise ValueError("Airport code is required")
        return v

    class Config:
        use_enum_values = True


class FlightCreate(FlightBase):
    pass


class FlightUpdate(BaseModel):
    """Partial update; only company_id may be cleared with null"""
    tail_number: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    start_airport: Optional[str] = None
    end_airport: Optional[str] = None
    notes: Optional[str] = None
    company_id: Optional[str] = None
    status: Optional[FlightStatus] = None

    @field_validator("start_date", "end_date", "notes", "status")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("tail_number")
    @classmethod
    def _tail_upper(cls, v):
        if v is None:
            raise ValueError("tail_number cannot be null")
        v = format_tail_number(v)
        if not v:
            raise ValueError("Tail number is required")
        return v

    @field_validator("start_airport", "end_airport")
    @classmethod
    def _airport_upper(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        v = format_airport_code(v)
        if not v:
            raise ValueError("Airport code is required")
        return v

    class Config:
        use_enum_values = True


class Flight(FlightBase):
    id: str = Field(alias="_id")
    created_by: str
    created_at: datetime
    updated_at: datetime
    # Resolved from company_id at read time
    company_name: Optional[str] = None

    class Config:
        populate_by_name = True
        use_enum_values = True


FLIGHTS_INDEXES = [
    {
        "keys": [("tail_number", 1), ("start_date", 1), ("end_date", 1)],
        "name": "flights_tail_dates"
    },
    {
        "keys": [("company_id", 1), ("start_date", 1), ("end_date", 1)],
        "name": "flights_company_dates"
    },
    {
        "keys": [("status", 1), ("start_date", 1), ("end_date", 1)],
        "name": "flights_status_dates"
    },
    {
        "keys": [("created_by", 1)],
        "name": "flights_created_by"
    },
    {
        "keys": [("request_id", 1)],
        "name": "flights_request_id",
        "sparse": True
    }
]
