from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    # MongoDB Configuration
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "flight_tracker"

    # JWT Configuration (tokens are issued by the auth backend)
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"

    # Retry policy for database operations
    retry_max_attempts: int = 3
    retry_initial_delay: float = 1.0  # seconds
    retry_max_delay: float = 5.0      # seconds
    offline_wait_timeout: Optional[float] = None  # None = wait until back online

    # Flight locks
    lock_expiry_minutes: int = 15
    lock_cleanup_interval_seconds: int = 60

    # Connectivity probe
    connectivity_probe_interval_seconds: int = 10

    # Application Configuration
    app_name: str = "Flight Tracker API"
    app_version: str = "1.0.0"
    environment: str = "development"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    class Config:
        env_file = ".env"
        case_sensitive = False

@lru_cache()
def get_settings():
    return Settings()
