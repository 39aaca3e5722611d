"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

SERVICE_NAME = "pothole-relayer"

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
    }
