"""
Backend adapter for the Flight Tracker collections

Table-level operations over MongoDB plus the rules the database enforces on
its own, whatever client is calling:
- required columns present and non-blank on every write
- flights: date/airport/status checks and the active-overlap rule per tail number
- company_tails: one row per (company_id, tail_number)
- deletes cascade (flight -> tasks, audit logs, lock; company -> tails)
- flight_locks: one row per flight, only the holder may overwrite it until it
  expires, stale rows removed on every lock write

Rejected writes raise BackendError. Driver connectivity errors (AutoReconnect,
ServerSelectionTimeoutError, ...) are left untouched for the retry layer.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)

TABLES = {
    "flights",
    "companies",
    "company_tails",
    "flight_tasks",
    "flight_locks",
    "audit_logs",
}

# Tables carrying an updated_at column
TIMESTAMPED_TABLES = {"flights", "companies"}

FLIGHT_STATUSES = ("active", "cancelled")

# Columns every row must carry, with their type
REQUIRED_COLUMNS = {
    "flights": {
        "tail_number": str,
        "start_date": datetime,
        "end_date": datetime,
        "start_airport": str,
        "end_airport": str,
        "notes": str,
    },
    "companies": {"name": str},
    "company_tails": {"company_id": str, "tail_number": str},
    "flight_tasks": {"flight_id": str, "description": str, "completed": bool},
}

# Text columns that may not be blank either
NON_BLANK_COLUMNS = {"tail_number", "start_airport", "end_airport", "name", "description", "company_id", "flight_id"}

# Child rows removed together with their parent
CASCADES = {
    "flights": [("flight_tasks", "flight_id"), ("audit_logs", "flight_id"), ("flight_locks", "_id")],
    "companies": [("company_tails", "company_id")],
}


class BackendError(Exception):
    """A write or read rejected by the backend (constraint, permission, missing row)"""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self):
        return self.message


def utcnow() -> datetime:
    """Naive UTC now, the form Mongo hands datetimes back in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _normalize(document: Dict[str, Any]) -> Dict[str, Any]:
    return {key: to_naive_utc(value) for key, value in document.items()}


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open [start, end) overlap"""
    return start_a < end_b and start_b < end_a


def check_required_columns(table: str, document: Dict[str, Any]) -> None:
    """Not-null and non-blank checks on the columns a row must carry"""
    for column, column_type in REQUIRED_COLUMNS.get(table, {}).items():
        value = document.get(column)
        if not isinstance(value, column_type):
            raise BackendError(
                f'null value in column "{column}" of relation "{table}" violates not-null constraint',
                code="23502",
                details={"column": column},
            )
        if column in NON_BLANK_COLUMNS and not value.strip():
            raise BackendError(
                f'new row for relation "{table}" violates check constraint "{table}_{column}_not_blank"',
                code="23514",
                details={"column": column},
            )


def check_flight_constraints(flight: Dict[str, Any]) -> None:
    """Row-level checks on a flight document"""
    if flight["end_date"] < flight["start_date"]:
        raise BackendError(
            'new row for relation "flights" violates check constraint "flights_dates_check"',
            code="23514",
        )
    if flight["start_airport"] == flight["end_airport"]:
        raise BackendError(
            'new row for relation "flights" violates check constraint "flights_airports_check"',
            code="23514",
        )
    if flight.get("status") not in FLIGHT_STATUSES:
        raise BackendError(
            'new row for relation "flights" violates check constraint "flights_status_check"',
            code="23514",
        )


def _not_found(table: str, record_id: str) -> BackendError:
    return BackendError(f"Record {record_id} not found in {table}", code="PGRST116")


class MongoBackend:
    """Backend operations for one database"""

    def __init__(self, db: AsyncIOMotorDatabase, lock_expiry: timedelta = timedelta(minutes=15)):
        self.db = db
        self.lock_expiry = lock_expiry

    def _collection(self, table: str):
        if table not in TABLES:
            raise BackendError(f'relation "{table}" does not exist', code="42P01")
        return self.db[table]

    # ==================== READS ====================

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: int = 1000
    ) -> List[Dict[str, Any]]:
        """Equality-filtered rows, sorted by one key (ties broken by _id)"""
        collection = self._collection(table)
        sort = []
        if order_by:
            sort.append((order_by, -1 if descending else 1))
        if order_by != "_id":
            sort.append(("_id", 1))
        cursor = collection.find(_normalize(filters or {})).sort(sort)
        return await cursor.to_list(length=limit)

    async def select_one(self, table: str, record_id: str) -> Dict[str, Any]:
        document = await self._collection(table).find_one({"_id": record_id})
        if document is None:
            raise _not_found(table, record_id)
        return document

    # ==================== WRITES ====================

    async def insert(
        self,
        table: str,
        document: Dict[str, Any],
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Insert a row and return it as stored.

        When request_id is given and a row was already written with it, that
        row is returned and nothing is inserted, so a retried insert whose first
        attempt committed does not create a duplicate.
        """
        collection = self._collection(table)

        if request_id:
            existing = await collection.find_one({"request_id": request_id})
            if existing is not None:
                logger.info(f"Insert into {table} already applied for request {request_id}")
                return existing

        doc = _normalize(document)
        now = utcnow()
        doc.setdefault("_id", str(uuid.uuid4()))
        doc["created_at"] = now
        if table in TIMESTAMPED_TABLES:
            doc["updated_at"] = now
        if table == "flights":
            doc.setdefault("notes", "")
            doc.setdefault("status", "active")
        elif table == "flight_tasks":
            doc.setdefault("completed", False)
        if request_id:
            doc["request_id"] = request_id

        await self._before_write(table, doc)

        try:
            await collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise BackendError(f"duplicate key value violates unique constraint: {e}", code="23505")

        return doc

    async def update(self, table: str, record_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update; returns the row after the update"""
        collection = self._collection(table)
        existing = await self.select_one(table, record_id)

        update_data = _normalize(changes)
        for key in ("_id", "created_at", "created_by", "request_id"):
            update_data.pop(key, None)

        if table in TIMESTAMPED_TABLES:
            update_data["updated_at"] = utcnow()

        merged = {**existing, **update_data}
        await self._before_write(table, merged)

        if update_data:
            try:
                await collection.update_one({"_id": record_id}, {"$set": update_data})
            except DuplicateKeyError as e:
                raise BackendError(f"duplicate key value violates unique constraint: {e}", code="23505")

        return merged

    async def delete(self, table: str, record_id: str) -> Dict[str, Any]:
        """Delete a row and everything that references it"""
        collection = self._collection(table)
        existing = await self.select_one(table, record_id)

        for child_table, foreign_key in CASCADES.get(table, []):
            result = await self.db[child_table].delete_many({foreign_key: record_id})
            if result.deleted_count:
                logger.info(f"Cascade deleted {result.deleted_count} {child_table} row(s) for {table} {record_id}")

        await collection.delete_one({"_id": record_id})
        return existing

    async def delete_where(self, table: str, filters: Dict[str, Any]) -> int:
        result = await self._collection(table).delete_many(_normalize(filters))
        return result.deleted_count

    # ==================== WRITE CHECKS ====================

    async def _before_write(self, table: str, document: Dict[str, Any]) -> None:
        check_required_columns(table, document)
        if table == "flights":
            check_flight_constraints(document)
            await self._check_flight_overlap(document)
        elif table == "company_tails":
            await self._check_unique_tail(document)

    async def _check_flight_overlap(self, flight: Dict[str, Any]) -> None:
        if flight.get("status") != "active":
            return

        clash = await self.db["flights"].find_one({
            "tail_number": flight["tail_number"],
            "_id": {"$ne": flight["_id"]},
            "status": "active",
            "start_date": {"$lt": flight["end_date"]},
            "end_date": {"$gt": flight["start_date"]},
        })
        if clash is not None:
            raise BackendError(
                f"Flight dates overlap with existing flight for tail number {flight['tail_number']}",
                code="P0001",
                details={"conflicting_flight_id": clash["_id"]},
            )

    async def _check_unique_tail(self, tail: Dict[str, Any]) -> None:
        clash = await self.db["company_tails"].find_one({
            "company_id": tail["company_id"],
            "tail_number": tail["tail_number"],
            "_id": {"$ne": tail["_id"]},
        })
        if clash is not None:
            raise BackendError(
                'duplicate key value violates unique constraint "company_tail_unique"',
                code="23505",
                details={"company_id": tail["company_id"], "tail_number": tail["tail_number"]},
            )

    # ==================== FLIGHT LOCKS ====================

    async def upsert_lock(self, flight_id: str, user_id: str, user_email: str) -> Dict[str, Any]:
        """
        Take or refresh the lock row of a flight.

        A row held by another user can only be replaced once it has expired.
        """
        await self.select_one("flights", flight_id)

        now = utcnow()
        await self.cleanup_expired_locks(now)

        existing = await self.db["flight_locks"].find_one({"_id": flight_id})
        if existing is not None and existing["user_id"] != user_id:
            raise BackendError(
                f"permission denied: flight {flight_id} is locked by {existing['user_email']}",
                code="42501",
                details={"user_id": existing["user_id"], "user_email": existing["user_email"]},
            )

        lock = {
            "_id": flight_id,
            "user_id": user_id,
            "user_email": user_email,
            "locked_at": now,
        }
        await self.db["flight_locks"].replace_one({"_id": flight_id}, lock, upsert=True)
        return lock

    async def delete_lock(self, flight_id: str, user_id: str) -> int:
        """Remove the caller's own lock row; other users' rows are left alone"""
        result = await self.db["flight_locks"].delete_one({"_id": flight_id, "user_id": user_id})
        return result.deleted_count

    async def cleanup_expired_locks(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or utcnow()) - self.lock_expiry
        result = await self.db["flight_locks"].delete_many({"locked_at": {"$lt": cutoff}})
        if result.deleted_count:
            logger.info(f"Removed {result.deleted_count} expired flight lock(s)")
        return result.deleted_count
