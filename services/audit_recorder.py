import logging
from typing import Any, Dict

from models.audit_log import AuditAction
from models.flight import Flight
from models.result import DbResult
from models.user import User
from services.data_access import AuditLogsAccess

logger = logging.getLogger(__name__)


def flight_snapshot(flight: Flight) -> Dict[str, Any]:
    """Stored form of a flight inside an audit entry"""
    return flight.dict(exclude={"company_name"})


class AuditRecorder:
    """
    Appends an audit entry after a flight is created or updated.

    Best effort: a failed audit write is logged and returned, never turned
    into a failure of the flight mutation that triggered it.
    """

    def __init__(self, audit_logs: AuditLogsAccess):
        self.audit_logs = audit_logs

    async def record_create(self, flight: Flight, user: User) -> DbResult:
        return await self._record(flight.id, user, AuditAction.CREATE, {
            "new": flight_snapshot(flight),
        })

    async def record_update(self, flight_id: str, previous: Flight, submitted: Dict[str, Any], user: User) -> DbResult:
        return await self._record(flight_id, user, AuditAction.UPDATE, {
            "previous": flight_snapshot(previous),
            "new": submitted,
        })

    async def _record(self, flight_id: str, user: User, action: AuditAction, changes: Dict[str, Any]) -> DbResult:
        result = await self.audit_logs.create({
            "flight_id": flight_id,
            "user_id": user.id,
            "action": action.value,
            "changes": changes,
        })
        if not result.ok:
            logger.warning(f"Audit log write failed for flight {flight_id} ({action.value}): {result.error}")
        return result
