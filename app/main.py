from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api import finance, member
from app.core.config import settings
from app.services.notifier import ChangeEvent, notifier
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Get logger for this module
logger = logging.getLogger(__name__)
logger.info(f"Starting {settings.APP_NAME}")

API_VERSION = "1.0.0"


def log_change(event: ChangeEvent):
    logger.debug(f"Change: {event.entity_type} {event.entity_id} -> {event.new_state}")


notifier.subscribe(log_change)

app = FastAPI(
    title=settings.APP_NAME,
    description="Membership dues ledger and payment reconciliation",
    version=API_VERSION,
    debug=settings.DEBUG,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(member.router)
app.include_router(finance.router)


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": settings.APP_NAME, "version": API_VERSION}


@app.get("/api/health")
def health_check():
    """Health check endpoint: checks API and database connectivity."""
    from app.db.base import SessionLocal
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from datetime import datetime, timezone

    db_status = "unreachable"
    db_error = None
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        db_error = str(e)
    finally:
        db.close()

    status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": status,
        "version": API_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": "ok",
            "database": db_status,
        },
        **({"database_error": db_error} if db_error else {})
    }
