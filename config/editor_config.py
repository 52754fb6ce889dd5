"""Editor configuration loaded from the environment.

The configuration is read once at process start into an immutable
EditorConfig and handed to the app explicitly (app.state.editor_config).
Request handling never reads environment variables.

Environment Variables:
    BLOB_EDITOR_PROJECT_ID: Project scope used when listing buckets
    BLOB_EDITOR_BUCKET: Restrict the editor to this single bucket ("" = all)
    BLOB_EDITOR_USERS: Comma-separated "login:salt:sha256hex" entries.
        WARNING: leaving this empty disables authentication entirely.
    BLOB_EDITOR_REALM: Basic auth realm (default: blob-editor)
    BLOB_EDITOR_BASE_PATH: URL prefix the editor is mounted under
        (default: "/$K_SERVICE" when K_SERVICE is set, else "")
    BLOB_EDITOR_TIMEOUT_SECONDS: Per-request deadline (default: 30)
    BLOB_EDITOR_MAX_FORM_BYTES: Largest accepted form field (default: 10 MiB)
    BLOB_EDITOR_STORAGE_BACKEND: "s3" or "local" (default: s3)
    BLOB_EDITOR_LOCAL_ROOT: Root directory for the local backend
    S3_ENDPOINT_URL / S3_REGION / S3_FORCE_PATH_STYLE: S3 client settings
    BLOB_EDITOR_LOG_LEVEL: Console log level (default: INFO)
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Any

from auth.basic_auth import Credential

STORAGE_BACKENDS = ("s3", "local")

_HEX_DIGEST = re.compile(r"^[0-9a-f]{64}$")


class ConfigError(ValueError):
    """Raised when the environment holds an invalid configuration."""


def _coerce_value(raw: str | None, value_type: str, default: Any) -> Any:
    if raw is None or raw == "":
        return default
    try:
        if value_type == "int":
            return int(raw)
        if value_type == "float":
            return float(raw)
        if value_type == "bool":
            return raw.lower() in ("true", "1", "yes", "on")
        return raw
    except ValueError:
        return default


def get_env_setting(env_name: str, default: Any, value_type: str = "string") -> Any:
    """Get a setting from the environment, coerced to value_type."""
    return _coerce_value(os.getenv(env_name), value_type, default)


def parse_users(raw: str) -> tuple[Credential, ...]:
    """Parse BLOB_EDITOR_USERS into credentials.

    Each entry is "login:salt:digest"; the salt may be empty. Digests are
    lowercase hex sha256 of salt + password (see scripts/hash_password.py).
    """
    credentials = []
    for entry in (raw or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) != 3:
            raise ConfigError(f"Invalid BLOB_EDITOR_USERS entry (want login:salt:digest): {parts[0]!r}")
        login, salt, digest = parts
        digest = digest.strip().lower()
        if not login:
            raise ConfigError("Invalid BLOB_EDITOR_USERS entry: empty login")
        if not _HEX_DIGEST.match(digest):
            raise ConfigError(f"Invalid BLOB_EDITOR_USERS digest for {login!r}: expected sha256 hex")
        credentials.append(Credential(login=login, salt=salt, digest=digest))
    return tuple(credentials)


def normalize_base_path(path: str) -> str:
    """Return "" or a path with a single leading slash and no trailing slash."""
    path = (path or "").strip().strip("/")
    return f"/{path}" if path else ""


@dataclass(frozen=True)
class EditorConfig:
    project_id: str = ""
    bucket_name: str = ""
    credentials: tuple[Credential, ...] = field(default_factory=tuple)
    realm: str = "blob-editor"
    base_path: str = ""
    request_timeout_seconds: float = 30.0
    max_form_bytes: int = 10 * 1024 * 1024
    storage_backend: str = "s3"
    local_root: str = "./data"
    s3_endpoint_url: str | None = None
    s3_region: str = "us-east-1"
    s3_force_path_style: bool = True
    log_level: str = "INFO"

    @property
    def auth_enabled(self) -> bool:
        return bool(self.credentials)

    @property
    def entry_path(self) -> str:
        """URL of the editor entry point, used in form actions and redirects."""
        return f"{self.base_path}/"


def load_editor_config() -> EditorConfig:
    """Build the EditorConfig from environment variables."""
    backend = get_env_setting("BLOB_EDITOR_STORAGE_BACKEND", "s3").strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise ConfigError(
            f"BLOB_EDITOR_STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {backend!r}"
        )

    timeout = get_env_setting("BLOB_EDITOR_TIMEOUT_SECONDS", 30.0, "float")
    if timeout <= 0:
        raise ConfigError("BLOB_EDITOR_TIMEOUT_SECONDS must be positive")

    # Cloud Run / Cloud Functions expose the service name as K_SERVICE
    default_base = os.getenv("K_SERVICE", "")
    base_path = get_env_setting("BLOB_EDITOR_BASE_PATH", default_base)

    return EditorConfig(
        project_id=get_env_setting("BLOB_EDITOR_PROJECT_ID", "").strip(),
        bucket_name=get_env_setting("BLOB_EDITOR_BUCKET", "").strip(),
        credentials=parse_users(get_env_setting("BLOB_EDITOR_USERS", "")),
        realm=get_env_setting("BLOB_EDITOR_REALM", "blob-editor"),
        base_path=normalize_base_path(base_path),
        request_timeout_seconds=timeout,
        max_form_bytes=get_env_setting("BLOB_EDITOR_MAX_FORM_BYTES", 10 * 1024 * 1024, "int"),
        storage_backend=backend,
        local_root=get_env_setting("BLOB_EDITOR_LOCAL_ROOT", "./data"),
        s3_endpoint_url=get_env_setting("S3_ENDPOINT_URL", None),
        s3_region=get_env_setting("S3_REGION", "us-east-1"),
        s3_force_path_style=get_env_setting("S3_FORCE_PATH_STYLE", True, "bool"),
        log_level=get_env_setting("BLOB_EDITOR_LOG_LEVEL", "INFO").upper(),
    )
