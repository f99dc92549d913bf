from datetime import datetime, timezone
from fastapi import APIRouter

from ytrelay.config.settings import config
from ytrelay.i18n import i18n
from ytrelay.models.response import HealthResponse, RootResponse

router = APIRouter()


@router.get("/", response_model=RootResponse)
async def root():
    """Service banner"""
    return {
        "status": i18n.get("response.status_ok"),
        "service": config.api.title,
        "version": config.api.version,
        "endpoints": {
            "info": "/api/info?url=YOUTUBE_URL",
            "download": "/api/download?url=YOUTUBE_URL&type=video&quality=720"
        }
    }


@router.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Lightweight health check"""
    return {
        "status": i18n.get("response.status_ok"),
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    }
