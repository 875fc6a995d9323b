"""Health check endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tenantscope.db.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter()


def check_storage(storage: Storage) -> tuple[bool, str]:
    """Check storage connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        storage.ping()
        return (True, "ok")
    except Exception as e:
        logger.warning(f"Storage health check failed: {e}")
        return (False, f"error: {type(e).__name__}")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
def healthz(request: Request) -> dict[str, Any] | JSONResponse:
    """Health check endpoint.

    Returns:
        200 with component status if storage is reachable
        503 otherwise
    """
    storage_ok, storage_status = check_storage(request.app.state.context_builder.storage)

    response_body = {
        "status": "ok" if storage_ok else "degraded",
        "components": {"storage": storage_status},
    }

    if not storage_ok:
        return JSONResponse(content=response_body, status_code=503)

    return response_body
