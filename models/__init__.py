"""Request and response models for the editor API."""

from .editor_models import (  # noqa: F401
    HealthResponse,
    Operation,
    RequestContext,
    resolve_request_context,
)
