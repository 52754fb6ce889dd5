"""Tests for backend selection."""

from unittest.mock import patch

from config.editor_config import EditorConfig
from storage.factory import build_object_store
from storage.local_store import LocalObjectStore
from storage.object_store import ObjectStore
from storage.s3_store import S3ObjectStore


class TestBuildObjectStore:
    def test_local_backend(self, tmp_path) -> None:
        store = build_object_store(EditorConfig(storage_backend="local", local_root=str(tmp_path)))
        assert isinstance(store, LocalObjectStore)
        assert isinstance(store, ObjectStore)
        assert store.root == tmp_path

    @patch("storage.factory.create_s3_client")
    def test_s3_backend(self, mock_create) -> None:
        config = EditorConfig(s3_endpoint_url="http://minio:9000", request_timeout_seconds=12.0)
        store = build_object_store(config)
        assert isinstance(store, S3ObjectStore)
        assert store.client is mock_create.return_value
        mock_create.assert_called_once_with(
            endpoint_url="http://minio:9000",
            region="us-east-1",
            force_path_style=True,
            timeout_seconds=12.0,
        )
