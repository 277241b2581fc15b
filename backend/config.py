"""
Device Factory Management - System Configuration
Version: 1.2.0

Changelog:
v1.2.0 (2026-03-09): DEVICE_CREATION_TYPE restricted to the known creation types
v1.1.0 (2026-03-04): SWM vehicle-sync endpoints, credentials and session TTL;
                      pagination limits moved into settings
v1.0.0 (2026-02-27): Initial configuration module
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pathlib import Path
import os


DEVICE_CREATION_TYPE_DEFAULT = "default"
DEVICE_CREATION_TYPE_GUEST_USER = "guestUser"  # provisioned like "default"
DEVICE_CREATION_TYPE_SWM = "swmIntegration"
DEVICE_CREATION_TYPES = (
    DEVICE_CREATION_TYPE_DEFAULT,
    DEVICE_CREATION_TYPE_GUEST_USER,
    DEVICE_CREATION_TYPE_SWM,
)

class Settings(BaseSettings):
    """System-wide configuration"""

    # Application
    APP_NAME: str = "Device Factory Management"
    APP_VERSION: str = "1.1.0"
    DEBUG: bool = False

    # API Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_WORKERS: int = 1

    # SQLite Configuration
    SQLITE_DB_PATH: str = str(Path(__file__).parent / "data" / "device_factory.db")

    # File Paths
    LOGS_DIR: str = str(Path(__file__).parent / "logs")

    # Device creation / vehicle sync switches
    DEVICE_CREATION_TYPE: str = DEVICE_CREATION_TYPE_DEFAULT
    SWM_INTEGRATION_ENABLED: bool = False

    # SWM vehicle management service
    SWM_BASE_URL: str = "http://localhost:8090"
    SWM_LOGIN_API: str = "/api/v1/login"
    SWM_VEHICLES_API: str = "/api/v1/vehicles"
    SWM_CREATE_API: str = "/api/v1/vehicles/create"
    SWM_UPDATE_API: str = "/api/v1/vehicles/update"
    SWM_DELETE_API: str = "/api/v1/vehicles/delete"
    SWM_USERNAME: str = ""  # Set via environment variable
    SWM_PASSWORD: str = ""  # Set via environment variable
    SWM_DOMAIN: str = ""
    SWM_DOMAIN_ID: str = ""
    SWM_VEHICLE_MODEL_ID: str = ""
    SWM_TIMEOUT: float = 10.0  # seconds
    SWM_SESSION_TTL: int = 1800  # seconds

    # Pagination
    DEFAULT_PAGE: int = 1
    DEFAULT_PAGE_SIZE: int = 20
    MIN_PAGE_SIZE: int = 1
    MAX_PAGE_SIZE: int = 5000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("DEVICE_CREATION_TYPE")
    @classmethod
    def check_creation_type(cls, value: str) -> str:
        if value not in DEVICE_CREATION_TYPES:
            raise ValueError(f"DEVICE_CREATION_TYPE must be one of {', '.join(DEVICE_CREATION_TYPES)}")
        return value

    def vin_integration_enabled(self) -> bool:
        """VIN side-table checks run only for the SWM creation type"""
        return self.DEVICE_CREATION_TYPE == DEVICE_CREATION_TYPE_SWM

    def vehicle_sync_enabled(self) -> bool:
        return self.vin_integration_enabled() and self.SWM_INTEGRATION_ENABLED


# Singleton instance
settings = Settings()


# Create required directories
def init_directories():
    """Create necessary directories if they don't exist"""
    for directory in [os.path.dirname(os.path.abspath(settings.SQLITE_DB_PATH)),
                      settings.LOGS_DIR]:
        os.makedirs(directory, exist_ok=True)


if __name__ == "__main__":
    print(f"Device Factory Management Configuration v{settings.APP_VERSION}")
    print(f"SQLite: {settings.SQLITE_DB_PATH}")
    print(f"Device creation type: {settings.DEVICE_CREATION_TYPE}")
    print(f"SWM integration: {'enabled' if settings.vehicle_sync_enabled() else 'disabled'}")
    print(f"SWM base URL: {settings.SWM_BASE_URL}")
