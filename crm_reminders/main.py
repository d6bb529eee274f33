"""Main FastAPI application for the CRM event store."""
import logging

from fastapi import FastAPI

from crm_reminders.db.init import init_db
from crm_reminders.middleware.cors import add_cors_middleware
from crm_reminders.routers import events_router, notifications_router
from crm_reminders.utils.metrics import metrics_collector

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="CRM Reminders API",
    description="Unified events store and notification center polled by the reminder scheduler",
    version="1.0.0",
)

# Add CORS middleware
add_cors_middleware(app)


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    try:
        init_db()
        logger.info("[SUCCESS] Database tables initialized successfully.")
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {str(e)}")
        logger.warning("[WARNING] Server will continue but database operations may fail.")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/metrics")
async def metrics():
    """Reminder engine counters for this process."""
    return metrics_collector.get_metrics()


@app.get("/")
async def root():
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the CRM Reminders API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(events_router, prefix="/api")  # /api/{user_id}/events
app.include_router(notifications_router, prefix="/api")  # /api/{user_id}/notifications

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "crm_reminders.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
