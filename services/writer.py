"""
Object writer.

Writes submitted content back to the store:
1. Empty submissions are refused before touching the store, a failed form
   post must never truncate an object.
2. The content type is sniffed from the bytes, the client's declared type
   is ignored.
3. The payload is written, then the write is finalized; both steps report
   their own error.
4. A request whose deadline has passed stops before each store call and
   aborts an open writer, so a timed-out save never lands.
5. The byte count written and the persisted size must both equal the
   submitted length. A mismatch is reported even though the store already
   accepted the write (there is no rollback).
"""

import logging
import threading

from services.content_sniff import detect_content_type
from services.errors import (
    AttributeFetchFailure,
    EmptySubmission,
    LengthMismatch,
    RequestTimeout,
    WriteFailure,
)
from storage.errors import StorageError
from storage.object_store import ObjectAttributes, ObjectStore

logger = logging.getLogger(__name__)


def check_deadline(cancelled: threading.Event | None) -> None:
    """Raise RequestTimeout once the request's deadline has been reported."""
    if cancelled is not None and cancelled.is_set():
        raise RequestTimeout("deadline passed before the store call")


def save_object(
    store: ObjectStore,
    bucket: str,
    name: str,
    content: bytes | None,
    cancelled: threading.Event | None = None,
) -> ObjectAttributes:
    """Overwrite bucket/name with content and return the persisted attributes.

    cancelled is set by the request handler when the deadline expires.
    """
    if not content:
        raise EmptySubmission("submitted content is empty, refusing to overwrite")

    try:
        bucket = store.get_bucket(bucket).name
    except StorageError as exc:
        raise AttributeFetchFailure(exc, "Getting bucket attributes") from exc

    content_type = detect_content_type(content)
    check_deadline(cancelled)
    try:
        writer = store.new_writer(bucket, name, content_type)
    except StorageError as exc:
        raise WriteFailure(exc, "Writing file") from exc

    try:
        check_deadline(cancelled)
        written = writer.write(content)
        check_deadline(cancelled)
    except RequestTimeout:
        writer.abort()
        logger.warning("Aborted write of %s/%s: request deadline passed", bucket, name)
        raise
    except StorageError as exc:
        writer.abort()
        raise WriteFailure(exc, "Writing file") from exc

    try:
        attrs = writer.close()
    except StorageError as exc:
        raise WriteFailure(exc, "Closing file") from exc

    if written != len(content):
        raise LengthMismatch(f"form:{len(content)} != bucket:{written}")
    if attrs.size != len(content):
        raise LengthMismatch(f"form:{len(content)} != stored:{attrs.size}")

    logger.info(
        "Saved %s/%s (%d bytes, %s, generation %s)",
        bucket,
        name,
        attrs.size,
        content_type,
        attrs.generation,
    )
    return attrs
