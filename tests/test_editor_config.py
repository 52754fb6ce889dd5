"""Tests for environment-driven editor configuration."""

import dataclasses
import os
from unittest.mock import patch

import pytest

from auth.basic_auth import hash_secret
from config.editor_config import (
    ConfigError,
    EditorConfig,
    load_editor_config,
    normalize_base_path,
    parse_users,
)

DIGEST = hash_secret("s3cret", "pepper")


class TestParseUsers:
    def test_single_entry(self) -> None:
        (cred,) = parse_users(f"admin:pepper:{DIGEST}")
        assert cred.login == "admin"
        assert cred.salt == "pepper"
        assert cred.digest == DIGEST

    def test_multiple_entries_and_empty_salt(self) -> None:
        creds = parse_users(f"admin:pepper:{DIGEST}, ops::{hash_secret('x')}")
        assert [c.login for c in creds] == ["admin", "ops"]
        assert creds[1].salt == ""

    def test_uppercase_digest_is_normalized(self) -> None:
        (cred,) = parse_users(f"admin:pepper:{DIGEST.upper()}")
        assert cred.digest == DIGEST

    def test_empty_means_no_users(self) -> None:
        assert parse_users("") == ()
        assert parse_users(" , ") == ()

    @pytest.mark.parametrize(
        "raw",
        ["admin", "admin:pepper", f":pepper:{DIGEST}", "admin:pepper:not-a-digest", f"a:b:c:{DIGEST}"],
    )
    def test_malformed_entries_fail_fast(self, raw) -> None:
        with pytest.raises(ConfigError):
            parse_users(raw)


class TestNormalizeBasePath:
    @pytest.mark.parametrize(
        "raw, expected",
        [("", ""), ("/", ""), ("cfedit", "/cfedit"), ("/cfedit/", "/cfedit"), ("a/b", "/a/b")],
    )
    def test_normalization(self, raw, expected) -> None:
        assert normalize_base_path(raw) == expected


class TestLoadEditorConfig:
    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = load_editor_config()
        assert config == EditorConfig()
        assert config.auth_enabled is False
        assert config.entry_path == "/"
        assert config.request_timeout_seconds == 30.0

    def test_reads_environment(self) -> None:
        env = {
            "BLOB_EDITOR_PROJECT_ID": "my-project",
            "BLOB_EDITOR_BUCKET": "demo",
            "BLOB_EDITOR_USERS": f"admin:pepper:{DIGEST}",
            "BLOB_EDITOR_BASE_PATH": "editor",
            "BLOB_EDITOR_TIMEOUT_SECONDS": "5",
            "BLOB_EDITOR_STORAGE_BACKEND": "LOCAL",
            "BLOB_EDITOR_LOCAL_ROOT": "/srv/blobs",
            "S3_FORCE_PATH_STYLE": "false",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_editor_config()
        assert config.project_id == "my-project"
        assert config.bucket_name == "demo"
        assert config.auth_enabled is True
        assert config.entry_path == "/editor/"
        assert config.request_timeout_seconds == 5.0
        assert config.storage_backend == "local"
        assert config.local_root == "/srv/blobs"
        assert config.s3_force_path_style is False

    def test_k_service_provides_default_base_path(self) -> None:
        with patch.dict(os.environ, {"K_SERVICE": "cfedit"}, clear=True):
            assert load_editor_config().base_path == "/cfedit"

    def test_unknown_backend_rejected(self) -> None:
        with patch.dict(os.environ, {"BLOB_EDITOR_STORAGE_BACKEND": "ftp"}, clear=True):
            with pytest.raises(ConfigError):
                load_editor_config()

    def test_non_positive_timeout_rejected(self) -> None:
        with patch.dict(os.environ, {"BLOB_EDITOR_TIMEOUT_SECONDS": "0"}, clear=True):
            with pytest.raises(ConfigError):
                load_editor_config()

    def test_config_is_immutable(self) -> None:
        config = EditorConfig(bucket_name="demo")
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.bucket_name = "other"
