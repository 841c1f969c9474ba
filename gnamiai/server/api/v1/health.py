"""
Health Check Endpoints.

Unauthenticated liveness probe used by the CLI and monitoring.
"""

from fastapi import APIRouter

from gnamiai import __version__

router = APIRouter()


@router.get(
    "/health",
    summary="Health Check",
    description="Check the operational status of the gateway.",
)
async def health_check():
    return {"ok": True}


@router.get("/version", summary="Get Version")
async def version():
    return {"version": __version__}
