"""Editor entry point.

A single endpoint serves every operation; the "o" parameter picks one:

    (none) / l  bucket selector and object listing of "b"
    d           raw content of "f" in bucket "b"
    e           edit page for "f" in bucket "b"
    s           save form field "c" to "f" in bucket "b", then redirect
                to the listing

Parameters may come from the query string or the form body; the body wins.
Authentication runs first (require_basic_auth). The whole request, that
check included, runs under one deadline of config.request_timeout_seconds.
"""

import asyncio
import logging
import threading

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from api.deps import get_editor_config, open_object_store
from auth.basic_auth import require_basic_auth
from config.editor_config import EditorConfig
from models.editor_models import (
    PARAM_BUCKET,
    PARAM_CONTENT,
    PARAM_OPERATION,
    Operation,
    RequestContext,
    resolve_request_context,
)
from services.browser import editor_url, render_listing
from services.editor import download_object, render_edit_page
from services.errors import FormParseFailure, RequestTimeout
from services.writer import check_deadline, save_object
from storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["editor"])

NO_STORE = {"Cache-Control": "no-store"}


async def read_parameters(request: Request, config: EditorConfig) -> tuple[dict[str, str], bytes | None]:
    """Merge query and form parameters; return them and the raw "c" field."""
    params: dict[str, str] = dict(request.query_params)
    content: bytes | None = None
    if request.method != "POST":
        return params, content

    try:
        form = await request.form(max_part_size=config.max_form_bytes)
    except (MultiPartException, StarletteHTTPException) as exc:
        detail = getattr(exc, "message", None) or getattr(exc, "detail", None) or str(exc)
        raise FormParseFailure(detail) from exc

    try:
        for key in form.keys():
            value = form.get(key)
            if key == PARAM_CONTENT:
                if isinstance(value, UploadFile):
                    content = await value.read(config.max_form_bytes + 1)
                    if len(content) > config.max_form_bytes:
                        raise FormParseFailure(f"field {PARAM_CONTENT!r} exceeds {config.max_form_bytes} bytes")
                else:
                    content = str(value).encode("utf-8")
            elif isinstance(value, str):
                params[key] = value
    finally:
        await form.close()
    return params, content


def dispatch(
    store: ObjectStore,
    config: EditorConfig,
    ctx: RequestContext,
    cancelled: threading.Event | None = None,
) -> Response:
    """Run the operation selected by ctx against the store.

    cancelled is set once the request deadline has expired; work that has
    not started yet is skipped and a pending save is aborted.
    """
    check_deadline(cancelled)
    if ctx.operation is Operation.DOWNLOAD:
        data, content_type = download_object(store, ctx.bucket, ctx.object_name)
        return Response(content=data, media_type=content_type, headers=NO_STORE)

    if ctx.operation is Operation.EDIT:
        page = render_edit_page(store, config, ctx.bucket, ctx.object_name)
        return HTMLResponse(page, headers=NO_STORE)

    if ctx.operation is Operation.SAVE:
        save_object(store, ctx.bucket, ctx.object_name, ctx.content, cancelled)
        # 303: the browser follows up with a GET
        listing = editor_url(
            config, **{PARAM_OPERATION: Operation.LIST_OBJECTS.value, PARAM_BUCKET: ctx.bucket}
        )
        return RedirectResponse(listing, status_code=303)

    return HTMLResponse(render_listing(store, config, ctx.bucket), headers=NO_STORE)


async def _handle(request: Request, config: EditorConfig, cancelled: threading.Event) -> Response:
    await require_basic_auth(request)
    params, content = await read_parameters(request, config)
    ctx = resolve_request_context(params, config, content)
    logger.debug("Dispatching op=%r bucket=%r object=%r", ctx.operation.value, ctx.bucket, ctx.object_name)
    store = open_object_store(request)
    # The deadline can cancel this future while the thread is still blocked;
    # cancelled tells the thread to stop before its next store call
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, dispatch, store, config, ctx, cancelled)


@router.api_route("/", methods=["GET", "POST"])
async def editor_entrypoint(request: Request) -> Response:
    """Authenticated entry point for every editor operation."""
    config = get_editor_config(request)
    cancelled = threading.Event()
    try:
        return await asyncio.wait_for(
            _handle(request, config, cancelled), timeout=config.request_timeout_seconds
        )
    except asyncio.TimeoutError as exc:
        cancelled.set()
        logger.warning("%s %s exceeded %.1fs deadline", request.method, request.url.path, config.request_timeout_seconds)
        raise RequestTimeout(f"exceeded {config.request_timeout_seconds:g}s") from exc
