"""Health check endpoint"""

from datetime import datetime, timezone
from fastapi import APIRouter, Request

router = APIRouter()

VERSION = "1.0.0"


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint

    Returns:
        Health status with timestamp, version and whether a provider key is configured
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "version": VERSION,
        "llm_configured": request.app.state.llm_client is not None,
    }
