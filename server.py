from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import timedelta
from database.mongodb import db, ensure_indexes
from config import get_settings
from routes import auth, flights, tasks, companies, locks, calendar
from services.connectivity import connectivity
from services.data_access import build_data_access
from services.lock_manager import SoftLockManager, run_lock_cleanup
import asyncio
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

settings = get_settings()


def _lock_manager() -> SoftLockManager:
    return SoftLockManager(
        build_data_access(db.get_db()),
        expiry=timedelta(minutes=settings.lock_expiry_minutes)
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for the app"""
    # Startup
    await db.connect(settings.mongo_url, settings.db_name)
    await ensure_indexes(db.get_db())
    background = [
        asyncio.create_task(connectivity.watch(db.ping, settings.connectivity_probe_interval_seconds)),
        asyncio.create_task(run_lock_cleanup(_lock_manager, settings.lock_cleanup_interval_seconds)),
    ]
    logger.info("Flight Tracker backend started")
    yield
    # Shutdown
    for task in background:
        task.cancel()
    await asyncio.gather(*background, return_exceptions=True)
    await db.disconnect()
    logger.info("Flight Tracker backend stopped")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Flight scheduling with companies, tail numbers, tasks and edit locks",
    version=settings.app_version,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(flights.router)
app.include_router(tasks.router)
app.include_router(companies.router)
app.include_router(locks.router)
app.include_router(calendar.router)

@app.get("/")
async def root():
    return {
        "message": settings.app_name,
        "version": settings.app_version,
        "status": "running"
    }

@app.get("/api")
async def api_root():
    return {
        "message": settings.app_name,
        "endpoints": {
            "flights": "/api/flights",
            "companies": "/api/companies",
            "tasks": "/api/tasks",
            "locks": "/api/flight-locks",
            "calendar": "/api/calendar"
        }
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "online": connectivity.is_online}
