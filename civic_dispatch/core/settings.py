"""
Core settings and environment variables for Civic Dispatch.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Civic Dispatch"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON

    # In-memory store for local development without Firebase credentials
    USE_MOCK_DB: bool = False
    MOCK_DB_PATH: str = "./db_seed.json"  # Optional JSON seed loaded into the in-memory store

    # Geocoding (second tier of location resolution)
    # - GEOCODING_PROVIDER: "nominatim" (default, no API key) or "google"
    # - GOOGLE_MAPS_API_KEY: only used when provider is "google"
    GEOCODING_PROVIDER: str = "nominatim"
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    GEOCODING_TIMEOUT_SECONDS: float = 3.0
    GEOCODING_USER_AGENT: str = "civic-dispatch/1.0"

    # Local geospatial index (first tier of location resolution)
    LOCAL_INDEX_RADIUS_METERS: float = 10000.0

    # Assignment
    # - FALLBACK_POLICY: "global" | "state" | "confirm"
    #   global  -> any active authority of the department, anywhere
    #   state   -> only authorities registered in the issue's state
    #   confirm -> cross-state candidates are proposed, not assigned
    FALLBACK_POLICY: str = "global"
    TRANSITION_MAX_RETRIES: int = 3

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"


# Global settings instance
settings = Settings()
