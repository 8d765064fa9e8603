"""
Health check endpoints for monitoring and diagnostics.
"""

import time
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..models.common import HealthStatus
from ..dependencies.keystore import get_key_store_manager, get_settings
from ..settings import ServiceSettings
from src.keystore.manager import KeyStoreManager

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()

@router.get("/", response_model=HealthStatus)
async def health_check(
    settings: ServiceSettings = Depends(get_settings),
    keystore_manager: KeyStoreManager = Depends(get_key_store_manager)
):
    """
    Basic health check endpoint.

    Returns the status of the API and its key store. The service stays
    "healthy" while the store is down; encrypt calls report upstream_unavailable.
    """
    uptime = time.time() - _server_start_time

    dependencies = {}
    if await keystore_manager.health_check():
        dependencies["keystore"] = f"available ({keystore_manager.store_type})"
    else:
        dependencies["keystore"] = f"unavailable ({keystore_manager.store_type})"

    return HealthStatus(
        status="healthy",
        version=settings.version,
        uptime=uptime,
        dependencies=dependencies
    )

@router.get("/ready")
async def readiness_check(keystore_manager: KeyStoreManager = Depends(get_key_store_manager)):
    """
    Readiness probe for container deployments.

    Returns 200 only when the key store can serve lookups.
    """
    if not await keystore_manager.health_check():
        return JSONResponse(status_code=503, content={"ready": False, "reason": "Key store unavailable"})

    return {"ready": True, "message": "Service ready to handle requests"}
