import logging
import os
from functools import lru_cache
from typing import Callable, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from api.editor_routes import router as editor_router
from api.health_routes import router as health_router
from auth.basic_auth import CredentialStore, unauthorized_response
from config.editor_config import EditorConfig, load_editor_config
from config.logging_config import print_startup_info, setup_console_logging
from services.errors import AuthenticationFailure, EditorError
from storage.factory import build_object_store
from storage.object_store import ObjectStore

load_dotenv()

logger = logging.getLogger("uvicorn")


def create_app(
    config: Optional[EditorConfig] = None,
    store_factory: Optional[Callable[[], ObjectStore]] = None,
) -> FastAPI:
    """Build the editor app.

    The config is read once here and attached to app.state; requests only
    ever see this immutable instance. The store client is created lazily on
    first use and reused; a failed creation is retried on the next request.
    """
    if config is None:
        config = load_editor_config()
    setup_console_logging(config.log_level)
    print_startup_info(config)

    if store_factory is None:
        store_factory = lru_cache(maxsize=1)(lambda: build_object_store(config))

    app = FastAPI(title="Blob Editor")
    app.state.editor_config = config
    app.state.credential_store = CredentialStore(config.credentials)
    app.state.store_factory = store_factory

    @app.exception_handler(AuthenticationFailure)
    async def _unauthorized(request: Request, exc: AuthenticationFailure):
        return unauthorized_response(config.realm)

    @app.exception_handler(EditorError)
    async def _editor_error(request: Request, exc: EditorError):
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return PlainTextResponse(exc.render_text(), status_code=exc.status_code)

    app.include_router(health_router)
    app.include_router(editor_router, prefix=config.base_path)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=os.getenv("BLOB_EDITOR_HOST", "0.0.0.0"),
        port=int(os.getenv("BLOB_EDITOR_PORT", "8080")),
    )
