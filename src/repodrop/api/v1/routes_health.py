"""Health check endpoint for repodrop."""

from fastapi import APIRouter

from repodrop.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        dict: Health status response with status, service, version and converter mode
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "converter": "remote" if settings.converter_enabled_remote else "local",
    }
