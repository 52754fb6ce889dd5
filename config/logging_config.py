"""Logging configuration.

Sets up console logging and logs the effective configuration at startup.
"""

import logging

from config.editor_config import EditorConfig


def setup_console_logging(level: str = "INFO") -> logging.Logger:
    """Set up console logging.

    Returns:
        The configured uvicorn logger.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    return logging.getLogger("uvicorn")


def print_startup_info(config: EditorConfig) -> None:
    """Log the editor configuration at startup. Secrets are never logged."""
    startup_logger = logging.getLogger("uvicorn")
    startup_logger.info("BLOB_EDITOR_STORAGE_BACKEND=%s", config.storage_backend)
    startup_logger.info("BLOB_EDITOR_PROJECT_ID=%s", config.project_id or "not set")
    startup_logger.info("BLOB_EDITOR_BUCKET=%s", config.bucket_name or "not set (all buckets)")
    startup_logger.info("BLOB_EDITOR_BASE_PATH=%s", config.entry_path)
    startup_logger.info("Request deadline: %gs", config.request_timeout_seconds)
    if config.auth_enabled:
        startup_logger.info("Basic auth enabled for %d user(s)", len(config.credentials))
    else:
        startup_logger.warning(
            "BLOB_EDITOR_USERS is empty: AUTHENTICATION IS DISABLED, anyone who can "
            "reach this service can read and overwrite objects"
        )
