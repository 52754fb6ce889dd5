"""Health check API routes.

Unauthenticated, never touches the object store.
"""

from fastapi import APIRouter, Request

from api.deps import get_editor_config
from models.editor_models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Liveness endpoint (standardized across all services)."""
    config = get_editor_config(request)
    return HealthResponse(
        status="healthy",
        storage_backend=config.storage_backend,
        bucket_pinned=bool(config.bucket_name),
        auth_enabled=config.auth_enabled,
    )
