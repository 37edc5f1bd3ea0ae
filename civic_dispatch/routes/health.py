"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from civic_dispatch.core.settings import settings
from civic_dispatch.store import get_store


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/db")
async def database_health():
    """
    Store connectivity check.
    Lists authorities as a lightweight read against the active store.
    """
    try:
        store = get_store()
        authorities = store.list_authorities()
        return {
            "status": "healthy",
            "database": "memory" if settings.USE_MOCK_DB else "firestore",
            "connected": True,
            "authorities_count": len(authorities),
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database connection failed: {str(e)}"
        )
