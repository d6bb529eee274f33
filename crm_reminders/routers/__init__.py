"""Routers package for the CRM event store."""

from .events import router as events_router
from .notifications import router as notifications_router

__all__ = ["events_router", "notifications_router"]
