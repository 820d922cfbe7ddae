from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

class FlightTaskCreate(BaseModel):
    description: str = Field(..., min_length=1)
    completed: bool = False
    due_date: Optional[datetime] = None

    @field_validator("description")
    @classmethod
    def _description_stripped(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Description is required")
        return v

class FlightTaskUpdate(BaseModel):
    """Partial update; due_date may be cleared with null"""
    description: Optional[str] = None
    completed: Optional[bool] = None
    due_date: Optional[datetime] = None

    @field_validator("description")
    @classmethod
    def _description_stripped(cls, v):
        if v is None or not v.strip():
            raise ValueError("Description is required")
        return v.strip()

    @field_validator("completed")
    @classmethod
    def _completed_not_null(cls, v):
        if v is None:
            raise ValueError("completed cannot be null")
        return v

class FlightTask(BaseModel):
    id: str = Field(alias="_id")
    flight_id: str
    description: str
    completed: bool = False
    due_date: Optional[datetime] = None
    created_by: str
    created_at: datetime

    class Config:
        populate_by_name = True


FLIGHT_TASKS_INDEXES = [
    {
        "keys": [("flight_id", 1), ("created_at", 1)],
        "name": "flight_tasks_flight_created"
    },
    {
        "keys": [("completed", 1)],
        "name": "flight_tasks_completed"
    },
    {
        "keys": [("due_date", 1)],
        "name": "flight_tasks_due_date"
    }
]
