from pydantic_settings import BaseSettings
from typing import Optional
from decimal import Decimal
from pathlib import Path

# Find .env file - check app/ directory first, then project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
APP_ENV = BASE_DIR / "app" / ".env"
ROOT_ENV = BASE_DIR / ".env"

# Use app/.env if it exists, otherwise try root .env
env_file = str(APP_ENV) if APP_ENV.exists() else (str(ROOT_ENV) if ROOT_ENV.exists() else ".env")


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str
    SQL_ECHO: bool = False

    # Storage behaviour
    STORAGE_TIMEOUT_SECONDS: int = 10
    STORAGE_RETRY_BACKOFF_SECONDS: float = 0.2

    # Dues
    MONTHLY_DUES_AMOUNT: Decimal = Decimal("5.00")
    ENTRANCE_FEE_AMOUNT: Decimal = Decimal("20.00")

    # Capability supplied by the upstream gateway for treasurer/chairman actions
    FINANCE_CAPABILITY: str = "finance:manage"

    # Application
    APP_NAME: str = "Residents Association Dues Ledger"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOGS_DIR: Optional[str] = None

    class Config:
        env_file = env_file
        case_sensitive = True


settings = Settings()

# Derived paths
LOGS_DIR = Path(settings.LOGS_DIR) if settings.LOGS_DIR else BASE_DIR / "logs"
