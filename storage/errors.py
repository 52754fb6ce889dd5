"""Exceptions raised by object store backends."""


class StorageError(RuntimeError):
    """A store operation failed (network, permissions, SDK error)."""


class ObjectNotFoundError(StorageError):
    """The bucket or object does not exist."""


class StaleGenerationError(StorageError):
    """A read was pinned to a generation that is no longer current."""
