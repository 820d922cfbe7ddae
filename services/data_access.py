"""
Resource Access Facade

One operation group per collection (flights, companies, company tails, tasks,
audit logs, flight locks). Every call goes through the Retrier and comes back
as a DbResult with typed data or a user-facing error - nothing is raised to
the caller.
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Type

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ValidationError

from config import get_settings
from database.backend import MongoBackend
from database.mongodb import get_database
from models.audit_log import AuditLog
from models.company import Company, CompanyTail
from models.flight import Flight, format_tail_number
from models.flight_lock import FlightLock
from models.result import DbResult, ErrorKind
from models.task import FlightTask
from models.user import User
from services.connectivity import connectivity
from services.error_messages import MALFORMED_RECORD_MESSAGE
from services.retrier import Retrier, RetryPolicy

logger = logging.getLogger(__name__)


class TableAccess:
    """Operations shared by every collection"""
    table: str = ""
    model: Type[BaseModel] = BaseModel
    default_order: Optional[str] = None
    descending: bool = False

    def __init__(self, backend: MongoBackend, retrier: Retrier):
        self.backend = backend
        self.retrier = retrier

    async def _run(self, description: str, call: Callable[[], Awaitable[Any]]) -> DbResult:
        return await self.retrier.run(call, description)

    def _parse(self, document: Optional[Dict[str, Any]]):
        return self.model(**document) if document is not None else None

    def _apply(self, result: DbResult, convert: Callable[[Any], Any]) -> DbResult:
        """Convert the data of a successful result; a row that does not fit the model fails it"""
        if not result.ok:
            return result
        try:
            result.data = convert(result.data)
        except ValidationError as e:
            logger.error(f"Malformed {self.table} row: {e}")
            return DbResult.failure(MALFORMED_RECORD_MESSAGE, ErrorKind.UNKNOWN)
        return result

    async def _list(self, filters: Optional[Dict[str, Any]] = None, order_by: Optional[str] = None,
                    descending: Optional[bool] = None) -> DbResult:
        result = await self._run(
            f"list {self.table}",
            lambda: self.backend.select(
                self.table,
                filters,
                order_by or self.default_order,
                self.descending if descending is None else descending,
            ),
        )
        return self._apply(result, lambda docs: [self._parse(doc) for doc in docs])

    async def _get(self, record_id: str) -> DbResult:
        result = await self._run(f"get {self.table} {record_id}",
                                 lambda: self.backend.select_one(self.table, record_id))
        return self._apply(result, self._parse)

    async def _create(self, document: Dict[str, Any]) -> DbResult:
        # One request id per logical insert, shared by all of its retries
        request_id = str(uuid.uuid4())
        result = await self._run(f"insert into {self.table}",
                                 lambda: self.backend.insert(self.table, document, request_id=request_id))
        return self._apply(result, self._parse)

    async def _update(self, record_id: str, changes: Dict[str, Any]) -> DbResult:
        result = await self._run(f"update {self.table} {record_id}",
                                 lambda: self.backend.update(self.table, record_id, changes))
        return self._apply(result, self._parse)

    async def _delete(self, record_id: str) -> DbResult:
        result = await self._run(f"delete {self.table} {record_id}",
                                 lambda: self.backend.delete(self.table, record_id))
        if result.ok:
            result.data = None
        return result


class FlightsAccess(TableAccess):
    table = "flights"
    model = Flight
    default_order = "start_date"

    async def get_all(self, filters: Optional[Dict[str, Any]] = None) -> DbResult:
        """All flights sorted by start date, company names resolved"""
        result = await self._list(filters)
        if result.ok:
            await self._resolve_company_names(result.data)
        return result

    async def get_by_id(self, flight_id: str) -> DbResult:
        result = await self._get(flight_id)
        if result.ok:
            await self._resolve_company_names([result.data])
        return result

    async def create(self, flight: Dict[str, Any]) -> DbResult:
        result = await self._create(_with_tail(flight))
        if result.ok:
            await self._resolve_company_names([result.data])
        return result

    async def update(self, flight_id: str, changes: Dict[str, Any]) -> DbResult:
        result = await self._update(flight_id, _with_tail(changes))
        if result.ok:
            await self._resolve_company_names([result.data])
        return result

    async def delete(self, flight_id: str) -> DbResult:
        return await self._delete(flight_id)

    async def _resolve_company_names(self, flights: Iterable[Flight]) -> None:
        flights = list(flights)
        company_ids = {f.company_id for f in flights if f.company_id}
        if not company_ids:
            return

        result = await self._run("list companies", lambda: self.backend.select("companies", order_by="name"))
        if not result.ok:
            logger.warning(f"Could not resolve company names: {result.error}")
            return

        names = {doc["_id"]: doc.get("name") for doc in result.data}
        for flight in flights:
            if flight.company_id:
                flight.company_name = names.get(flight.company_id)


class CompaniesAccess(TableAccess):
    table = "companies"
    model = Company
    default_order = "name"

    async def get_all(self) -> DbResult:
        return await self._list()

    async def get_by_id(self, company_id: str) -> DbResult:
        return await self._get(company_id)

    async def create(self, company: Dict[str, Any]) -> DbResult:
        return await self._create(company)

    async def update(self, company_id: str, changes: Dict[str, Any]) -> DbResult:
        return await self._update(company_id, changes)

    async def delete(self, company_id: str) -> DbResult:
        """Delete a company together with its registered tails"""
        return await self._delete(company_id)


class CompanyTailsAccess(TableAccess):
    table = "company_tails"
    model = CompanyTail
    default_order = "tail_number"

    async def get_by_company(self, company_id: str) -> DbResult:
        return await self._list({"company_id": company_id})

    async def create(self, company_id: str, tail_number: str) -> DbResult:
        return await self._create({
            "company_id": company_id,
            "tail_number": format_tail_number(tail_number),
        })

    async def delete(self, tail_id: str) -> DbResult:
        return await self._delete(tail_id)

    async def delete_by_tail(self, company_id: str, tail_number: str) -> DbResult:
        """Remove a tail from a company; data is the number of rows removed"""
        filters = {"company_id": company_id, "tail_number": format_tail_number(tail_number)}
        return await self._run(f"delete {self.table} {filters}",
                               lambda: self.backend.delete_where(self.table, filters))


class TasksAccess(TableAccess):
    table = "flight_tasks"
    model = FlightTask
    default_order = "created_at"

    async def get_by_flight(self, flight_id: str) -> DbResult:
        return await self._list({"flight_id": flight_id})

    async def get_by_id(self, task_id: str) -> DbResult:
        return await self._get(task_id)

    async def create(self, task: Dict[str, Any]) -> DbResult:
        return await self._create(task)

    async def update(self, task_id: str, changes: Dict[str, Any]) -> DbResult:
        return await self._update(task_id, changes)

    async def delete(self, task_id: str) -> DbResult:
        return await self._delete(task_id)


class AuditLogsAccess(TableAccess):
    table = "audit_logs"
    model = AuditLog
    default_order = "created_at"
    descending = True

    async def get_by_flight(self, flight_id: str) -> DbResult:
        """Audit entries of a flight, most recent first"""
        return await self._list({"flight_id": flight_id})

    async def create(self, entry: Dict[str, Any]) -> DbResult:
        return await self._create(entry)


class FlightLocksAccess(TableAccess):
    table = "flight_locks"
    model = FlightLock
    default_order = "locked_at"

    async def get_all(self) -> DbResult:
        return await self._list()

    async def get(self, flight_id: str) -> DbResult:
        """Lock row of a flight; data is None when nobody holds it"""
        result = await self._run(f"get {self.table} {flight_id}",
                                 lambda: self.backend.select(self.table, {"_id": flight_id}))
        return self._apply(result, lambda docs: self._parse(docs[0]) if docs else None)

    async def upsert(self, flight_id: str, user: User) -> DbResult:
        result = await self._run(f"lock flight {flight_id}",
                                 lambda: self.backend.upsert_lock(flight_id, user.id, user.email))
        return self._apply(result, self._parse)

    async def delete(self, flight_id: str, user: User) -> DbResult:
        """Release the caller's lock; data is True when a row was removed"""
        result = await self._run(f"unlock flight {flight_id}",
                                 lambda: self.backend.delete_lock(flight_id, user.id))
        if result.ok:
            result.data = result.data > 0
        return result

    async def cleanup(self) -> DbResult:
        return await self._run("cleanup flight locks", lambda: self.backend.cleanup_expired_locks())


class DataAccess:
    """Entry point: data.flights, data.companies, data.tasks, ..."""

    def __init__(self, backend: MongoBackend, retrier: Optional[Retrier] = None):
        self.backend = backend
        self.retrier = retrier or Retrier()
        self.flights = FlightsAccess(backend, self.retrier)
        self.companies = CompaniesAccess(backend, self.retrier)
        self.company_tails = CompanyTailsAccess(backend, self.retrier)
        self.tasks = TasksAccess(backend, self.retrier)
        self.audit_logs = AuditLogsAccess(backend, self.retrier)
        self.locks = FlightLocksAccess(backend, self.retrier)


def _with_tail(document: Dict[str, Any]) -> Dict[str, Any]:
    if document.get("tail_number"):
        return {**document, "tail_number": format_tail_number(document["tail_number"])}
    return document


def build_data_access(database: AsyncIOMotorDatabase) -> DataAccess:
    settings = get_settings()
    backend = MongoBackend(database, lock_expiry=timedelta(minutes=settings.lock_expiry_minutes))
    retrier = Retrier(
        policy=RetryPolicy.from_settings(settings),
        connectivity=connectivity,
        offline_timeout=settings.offline_wait_timeout,
    )
    return DataAccess(backend, retrier)


async def get_data_access(database: AsyncIOMotorDatabase = Depends(get_database)) -> DataAccess:
    return build_data_access(database)
