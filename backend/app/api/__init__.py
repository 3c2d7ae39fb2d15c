"""API Routes for the pharmacy sync service."""

from app.api import health, pharmacy_sync

__all__ = [
    "health",
    "pharmacy_sync",
]
