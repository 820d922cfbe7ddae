"""
Audit Log Model

Append-only history of flight mutations.

Collection: audit_logs

changes payload:
- create: {"new": <created flight>}
- update: {"previous": <snapshot before update>, "new": <submitted fields>}
"""

from pydantic import BaseModel, Field
from typing import Any, Dict
from datetime import datetime
from enum import Enum


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"


class AuditLog(BaseModel):
    id: str = Field(alias="_id")
    flight_id: str
    user_id: str
    action: AuditAction
    changes: Dict[str, Any]
    created_at: datetime

    class Config:
        populate_by_name = True
        use_enum_values = True


AUDIT_LOGS_INDEXES = [
    {
        "keys": [("flight_id", 1), ("created_at", -1)],
        "name": "audit_logs_flight_created"
    },
    {
        "keys": [("user_id", 1)],
        "name": "audit_logs_user_id"
    }
]
