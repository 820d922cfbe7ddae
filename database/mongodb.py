from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from typing import Optional
import logging

logger = logging.getLogger(__name__)

class Database:
    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self, mongo_url: str, db_name: str):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(mongo_url, serverSelectionTimeoutMS=5000)
            self.db = self.client[db_name]
            # Verify connection
            await self.client.admin.command('ping')
            logger.info(f"Connected to MongoDB database: {db_name}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def disconnect(self):
        """Disconnect from MongoDB"""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def ping(self) -> bool:
        """Return True when the server answers a ping"""
        if self.client is None:
            return False
        try:
            await self.client.admin.command('ping')
            return True
        except Exception as e:
            logger.debug(f"MongoDB ping failed: {e}")
            return False

    def get_db(self) -> AsyncIOMotorDatabase:
        """Get database instance"""
        if self.db is None:
            raise Exception("Database not connected")
        return self.db

db = Database()

async def get_database() -> AsyncIOMotorDatabase:
    return db.get_db()


def _index_specs():
    from models.flight import FLIGHTS_INDEXES
    from models.company import COMPANIES_INDEXES, COMPANY_TAILS_INDEXES
    from models.task import FLIGHT_TASKS_INDEXES
    from models.audit_log import AUDIT_LOGS_INDEXES
    from models.flight_lock import FLIGHT_LOCKS_INDEXES

    return {
        "flights": FLIGHTS_INDEXES,
        "companies": COMPANIES_INDEXES,
        "company_tails": COMPANY_TAILS_INDEXES,
        "flight_tasks": FLIGHT_TASKS_INDEXES,
        "audit_logs": AUDIT_LOGS_INDEXES,
        "flight_locks": FLIGHT_LOCKS_INDEXES,
    }


async def ensure_indexes(database: AsyncIOMotorDatabase) -> None:
    """Create the indexes declared next to each model"""
    for collection, specs in _index_specs().items():
        for idx_spec in specs:
            try:
                await database[collection].create_index(
                    idx_spec["keys"],
                    unique=idx_spec.get("unique", False),
                    sparse=idx_spec.get("sparse", False),
                    name=idx_spec["name"],
                    background=True
                )
            except Exception as e:
                # Index exists with other options or other non-fatal error
                logger.debug(f"Index {idx_spec['name']} skip: {e}")
    logger.info("Indexes ensured for flight tracker collections")
