"""Request-scoped access to the objects attached to app.state at startup."""

import logging

from fastapi import Request

from config.editor_config import EditorConfig
from services.errors import StoreUnavailable
from storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


def get_editor_config(request: Request) -> EditorConfig:
    """The immutable configuration built when the app was created."""
    try:
        return request.app.state.editor_config
    except AttributeError as exc:
        raise RuntimeError("Editor config not initialized on app.state (use main.create_app).") from exc


def open_object_store(request: Request) -> ObjectStore:
    """Object store client for this request.

    Client construction failures (bad endpoint, missing SDK credentials
    configuration, ...) are reported to the caller as StoreUnavailable.
    """
    factory = request.app.state.store_factory
    try:
        return factory()
    except Exception as exc:
        logger.warning("Cannot create object store client: %s", exc)
        raise StoreUnavailable(exc) from exc
