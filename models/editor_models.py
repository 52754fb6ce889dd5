"""Request-scoped models for the editor.

A RequestContext lives for exactly one request/response cycle and is never
persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel

from config.editor_config import EditorConfig

# Query/form parameter names
PARAM_OPERATION = "o"
PARAM_BUCKET = "b"
PARAM_OBJECT = "f"
PARAM_CONTENT = "c"
PARAM_CANCEL = "cancel"


class Operation(str, Enum):
    """Operation codes carried in the "o" parameter."""

    DEFAULT = ""
    LIST_OBJECTS = "l"
    DOWNLOAD = "d"
    EDIT = "e"
    SAVE = "s"

    @classmethod
    def from_code(cls, code: str | None) -> "Operation":
        try:
            return cls((code or "").strip())
        except ValueError:
            # Unknown codes fall through to the listing
            return cls.DEFAULT


@dataclass(frozen=True)
class RequestContext:
    bucket: str
    object_name: str
    operation: Operation
    content: bytes | None = None


def resolve_request_context(
    params: Mapping[str, str],
    config: EditorConfig,
    content: bytes | None = None,
) -> RequestContext:
    """Turn request parameters into a RequestContext.

    A pinned bucket always replaces whatever bucket the caller sent. A
    "cancel" submitted from the edit form is handled like the listing.
    """
    bucket = config.bucket_name or params.get(PARAM_BUCKET, "")
    operation = Operation.from_code(params.get(PARAM_OPERATION))
    if operation is Operation.SAVE and PARAM_CANCEL in params:
        operation = Operation.DEFAULT
    return RequestContext(
        bucket=bucket,
        object_name=params.get(PARAM_OBJECT, ""),
        operation=operation,
        content=content if operation is Operation.SAVE else None,
    )


class HealthResponse(BaseModel):
    """Response for the health endpoint."""

    status: str
    storage_backend: str
    bucket_pinned: bool
    auth_enabled: bool
