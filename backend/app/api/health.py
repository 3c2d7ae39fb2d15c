from fastapi import APIRouter

from app.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Liveness plus whether outbound pharmacy calls can authenticate."""
    return {
        "status": "healthy",
        "service": "pharmacy-sync-api",
        "pharmacy_api_configured": bool(settings.pharmacy_api_key),
    }


@router.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "docs": "/docs",
        "health": "/health",
    }
