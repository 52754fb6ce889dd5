"""Object store construction from EditorConfig."""

import logging

from config.editor_config import EditorConfig
from storage.local_store import LocalObjectStore
from storage.object_store import ObjectStore
from storage.s3_store import S3ObjectStore, create_s3_client

logger = logging.getLogger(__name__)


def build_object_store(config: EditorConfig) -> ObjectStore:
    """Create the backend selected by config.storage_backend."""
    if config.storage_backend == "local":
        logger.info("Using local object store at %s", config.local_root)
        return LocalObjectStore(config.local_root)

    client = create_s3_client(
        endpoint_url=config.s3_endpoint_url,
        region=config.s3_region,
        force_path_style=config.s3_force_path_style,
        timeout_seconds=config.request_timeout_seconds,
    )
    logger.info("Using S3 object store (endpoint=%s)", config.s3_endpoint_url or "aws")
    return S3ObjectStore(client)
