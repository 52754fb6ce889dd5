"""
Object editor and reader.

fetch_latest() is the only way the editor reads object content. It looks
up the object's current generation first and then reads exactly that
generation, so a cache sitting between us and the store can never hand an
older copy to someone about to overwrite the object.
"""

import html
import logging

from config.editor_config import EditorConfig
from models.editor_models import PARAM_BUCKET, PARAM_CANCEL, PARAM_CONTENT, PARAM_OBJECT, PARAM_OPERATION, Operation
from services.browser import editor_url
from services.errors import AttributeFetchFailure, ReadFailure
from storage.errors import StorageError
from storage.object_store import ObjectAttributes, ObjectStore

logger = logging.getLogger(__name__)


def fetch_latest(store: ObjectStore, bucket: str, name: str) -> tuple[ObjectAttributes, bytes]:
    """Return the attributes and content of the current generation of an object."""
    try:
        attrs = store.get_attributes(bucket, name)
    except StorageError as exc:
        raise AttributeFetchFailure(exc, "Getting file attributes") from exc

    try:
        reader = store.open_reader(bucket, name, attrs.generation)
    except StorageError as exc:
        raise ReadFailure(exc, "Opening file") from exc

    try:
        data = reader.read()
    except (StorageError, OSError) as exc:
        raise ReadFailure(exc, "Reading file") from exc
    finally:
        reader.close()

    logger.debug("Read %s/%s generation=%s (%d bytes)", bucket, name, attrs.generation, len(data))
    return attrs, data


def _check_bucket(store: ObjectStore, bucket: str) -> str:
    try:
        return store.get_bucket(bucket).name
    except StorageError as exc:
        raise AttributeFetchFailure(exc, "Getting bucket attributes") from exc


def download_object(store: ObjectStore, bucket: str, name: str) -> tuple[bytes, str]:
    """Raw object bytes and their store-reported content type."""
    attrs, data = fetch_latest(store, bucket, name)
    return data, attrs.content_type or "application/octet-stream"


def render_edit_page(store: ObjectStore, config: EditorConfig, bucket: str, name: str) -> str:
    """HTML page with the object content in an editable textarea."""
    bucket = _check_bucket(store, bucket)
    _, data = fetch_latest(store, bucket, name)
    text = data.decode("utf-8", errors="replace")

    save_action = editor_url(
        config,
        **{PARAM_OPERATION: Operation.SAVE.value, PARAM_BUCKET: bucket, PARAM_OBJECT: name},
    )
    # Browsers drop the first newline after <textarea>, hence the "\n" below
    return (
        "<html>\n<body>\n"
        f'<form name="edit" action="{html.escape(save_action)}" method="post" enctype="multipart/form-data">\n'
        f'<textarea name="{PARAM_CONTENT}" spellcheck="false" style="width: 100%; height: 90%">\n'
        f"{html.escape(text)}"
        "</textarea><p>\n"
        '<input type="submit" value="save" style="float: left;">\n'
        f'<input type="submit" name="{PARAM_CANCEL}" value="cancel" style="float: left; margin-left: 10px">\n'
        "</form>\n</body>\n</html>\n"
    )
