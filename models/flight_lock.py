"""
Flight Lock Model

Advisory "who is editing" marker. One row per flight (flight id is the
document _id), readable by everyone, writable only by its holder. Rows older
than the expiry are removed by the lock cleanup.

Collection: flight_locks
"""

from pydantic import BaseModel, Field
from datetime import datetime, timedelta


class FlightLock(BaseModel):
    flight_id: str = Field(alias="_id")
    user_id: str
    user_email: str
    locked_at: datetime

    class Config:
        populate_by_name = True

    def is_expired(self, now: datetime, expiry: timedelta) -> bool:
        return self.locked_at < now - expiry


FLIGHT_LOCKS_INDEXES = [
    {
        "keys": [("user_id", 1)],
        "name": "flight_locks_user_id"
    },
    {
        "keys": [("locked_at", 1)],
        "name": "flight_locks_locked_at"
    }
]
