"""Storage backends for the blob editor."""

from .errors import ObjectNotFoundError, StaleGenerationError, StorageError
from .object_store import BucketInfo, ObjectAttributes, ObjectReader, ObjectStore, ObjectWriter

__all__ = [
    "BucketInfo",
    "ObjectAttributes",
    "ObjectNotFoundError",
    "ObjectReader",
    "ObjectStore",
    "ObjectWriter",
    "StaleGenerationError",
    "StorageError",
]
