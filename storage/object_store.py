"""
Object store abstraction used by the editor.

Any backend (S3/MinIO, local filesystem, ...) can be plugged in as long as it
implements the ObjectStore protocol below. Backends translate their SDK
exceptions into storage.errors.StorageError so the services above never
depend on a specific SDK.

Generations:
    get_attributes() returns an opaque generation token identifying the
    current version of an object. open_reader() must serve exactly that
    version (or fail), never a cached or older copy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Protocol, runtime_checkable


@dataclass(frozen=True)
class BucketInfo:
    """Attributes of a bucket."""

    name: str


@dataclass(frozen=True)
class ObjectAttributes:
    """Metadata of a single object."""

    bucket: str
    name: str
    size: int
    content_type: str
    generation: str


@runtime_checkable
class ObjectReader(Protocol):
    """A readable handle on one pinned object generation."""

    def read(self, size: int = -1) -> bytes: ...

    def close(self) -> None: ...


@runtime_checkable
class ObjectWriter(Protocol):
    """An in-progress write of one object.

    Nothing is visible in the store until close() returns.
    """

    def write(self, data: bytes) -> int: ...

    def close(self) -> ObjectAttributes: ...

    def abort(self) -> None: ...


@runtime_checkable
class ObjectStore(Protocol):
    """Capabilities the editor needs from a storage backend."""

    def list_buckets(self, project_id: str) -> Iterator[BucketInfo]: ...

    def get_bucket(self, bucket: str) -> BucketInfo: ...

    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[ObjectAttributes]: ...

    def get_attributes(self, bucket: str, name: str) -> ObjectAttributes: ...

    def open_reader(self, bucket: str, name: str, generation: str) -> ObjectReader: ...

    def new_writer(self, bucket: str, name: str, content_type: str) -> ObjectWriter: ...
