"""
Bucket and object browser.

Renders the bucket selector and the object listing of the selected bucket.
Bucket and object names come from whoever can write to the store, so every
name is HTML-escaped before it reaches the page.
"""

import html
import logging
from urllib.parse import urlencode

import humanize

from config.editor_config import EditorConfig
from models.editor_models import PARAM_BUCKET, PARAM_OPERATION, Operation
from services.errors import AttributeFetchFailure, EditorError, ReadFailure
from storage.errors import StorageError
from storage.object_store import ObjectAttributes, ObjectStore

logger = logging.getLogger(__name__)

PAGE_HEAD = "<html>\n<body>\n<center>\n"
PAGE_TAIL = "</center>\n</body>\n</html>\n"


def editor_url(config: EditorConfig, **params: str) -> str:
    """URL of the editor entry point with the given query parameters."""
    if not params:
        return config.entry_path
    return f"{config.entry_path}?{urlencode(params)}"


def list_buckets(store: ObjectStore, config: EditorConfig) -> list[str]:
    """Names of the buckets visible under the configured project."""
    try:
        names = [bucket.name for bucket in store.list_buckets(config.project_id)]
    except StorageError as exc:
        raise ReadFailure(exc, "Listing buckets") from exc
    if config.bucket_name:
        names = [name for name in names if name == config.bucket_name]
    return names


def render_bucket_selector(store: ObjectStore, config: EditorConfig, selected: str) -> str:
    out = [
        f'<form action="{html.escape(editor_url(config))}" method="post">\n'
        f'<select name="{PARAM_BUCKET}">\n'
    ]
    for name in list_buckets(store, config):
        mark = " selected" if name == selected else ""
        out.append(f'<option value="{html.escape(name)}"{mark}>{html.escape(name)}</option>\n')
    out.append('</select>\n<input type="submit" value="get files">\n</form>\n<p>\n')
    return "".join(out)


def list_objects(store: ObjectStore, bucket: str) -> list[ObjectAttributes]:
    """All objects of the bucket, flat namespace."""
    try:
        return list(store.list_objects(bucket, prefix=""))
    except StorageError as exc:
        raise ReadFailure(exc, "Listing files") from exc


def _render_object_form(config: EditorConfig, bucket: str, objects: list[ObjectAttributes]) -> str:
    edit_action = editor_url(config, **{PARAM_OPERATION: Operation.EDIT.value, PARAM_BUCKET: bucket})
    download_action = editor_url(
        config, **{PARAM_OPERATION: Operation.DOWNLOAD.value, PARAM_BUCKET: bucket}
    )
    out = [
        f'<form action="{html.escape(edit_action)}" method="post">\n'
        '<select size="20" name="f" style="min-width: 400px;">\n'
    ]
    for obj in objects:
        out.append(
            f'<option value="{html.escape(obj.name)}">'
            f"{html.escape(obj.name)} [{humanize.naturalsize(obj.size)}]</option>\n"
        )
    out.append(
        "</select>\n<p>\n"
        '<input type="submit" value="edit file">\n'
        f'<input type="submit" formaction="{html.escape(download_action)}" value="download">\n'
        "</form>\n"
    )
    return "".join(out)


def render_listing(store: ObjectStore, config: EditorConfig, bucket: str) -> str:
    """Bucket selector (unless pinned) followed by the object listing.

    Once the selector has been rendered, later failures are appended as an
    HTML error fragment so the page stays well-formed. Without a selector
    they are raised and reported as plain text.
    """
    out = [PAGE_HEAD]
    selected = ""
    bucket_error: EditorError | None = None
    if bucket:
        try:
            selected = store.get_bucket(bucket).name
        except StorageError as exc:
            logger.warning("Cannot open bucket %r: %s", bucket, exc)
            bucket_error = AttributeFetchFailure(exc, "Opening a bucket")

    if config.bucket_name:
        if bucket_error is not None:
            raise bucket_error
    else:
        out.append(render_bucket_selector(store, config, selected))
        if not selected:
            out.append(bucket_error.render_html_fragment() if bucket_error else PAGE_TAIL)
            return "".join(out)

    try:
        objects = list_objects(store, selected)
    except ReadFailure as exc:
        if config.bucket_name:
            raise
        out.append(exc.render_html_fragment())
        return "".join(out)

    out.append(_render_object_form(config, selected, objects))
    out.append(PAGE_TAIL)
    return "".join(out)
