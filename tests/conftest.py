"""Shared test fixtures for blob editor tests."""

import base64
import sys
from pathlib import Path

# Add project root to path so imports work without PYTHONPATH
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import io
from typing import Any, Callable, Iterator, Optional

import pytest
from fastapi.testclient import TestClient

from auth.basic_auth import Credential, hash_secret
from config.editor_config import EditorConfig
from storage.errors import ObjectNotFoundError, StaleGenerationError, StorageError
from storage.object_store import BucketInfo, ObjectAttributes


class FakeWriter:
    """Writer for FakeObjectStore; nothing is visible until close()."""

    def __init__(self, store: "FakeObjectStore", bucket: str, name: str, content_type: str):
        self.store = store
        self.bucket = bucket
        self.name = name
        self.content_type = content_type
        self.buffer = io.BytesIO()
        self.aborted = False

    def write(self, data: bytes) -> int:
        if self.store.fail_write:
            raise StorageError("simulated write failure")
        self.buffer.write(data)
        return len(data) - self.store.short_write

    def close(self) -> ObjectAttributes:
        if self.store.fail_close:
            raise StorageError("simulated finalize failure")
        return self.store.put(self.bucket, self.name, self.buffer.getvalue(), self.content_type)

    def abort(self) -> None:
        self.aborted = True


class FakeObjectStore:
    """In-memory versioned object store.

    Every version ever written is kept, so a read pinned to an old
    generation returns old content, like a CDN-cached copy would. Tests use
    that to check that readers always pin the current generation.
    """

    def __init__(self, buckets: Optional[dict[str, dict[str, bytes]]] = None):
        self.buckets: dict[str, dict[str, list[tuple[int, bytes, str]]]] = {}
        self.generation = 0
        self.reads: list[tuple[str, str, str]] = []
        self.writes: list[tuple[str, str, bytes, str]] = []
        self.fail_attributes = False
        self.fail_open = False
        self.fail_read = False
        self.fail_write = False
        self.fail_close = False
        self.fail_list_buckets = False
        self.fail_list_objects = False
        self.short_write = 0
        for bucket, objects in (buckets or {}).items():
            self.buckets[bucket] = {}
            for name, data in objects.items():
                self.put(bucket, name, data, "text/plain; charset=utf-8")
        self.writes.clear()

    def put(self, bucket: str, name: str, data: bytes, content_type: str) -> ObjectAttributes:
        self.generation += 1
        self.buckets[bucket].setdefault(name, []).append((self.generation, data, content_type))
        self.writes.append((bucket, name, data, content_type))
        return self._attrs(bucket, name)

    def _attrs(self, bucket: str, name: str) -> ObjectAttributes:
        generation, data, content_type = self.buckets[bucket][name][-1]
        return ObjectAttributes(bucket, name, len(data), content_type, str(generation))

    def content(self, bucket: str, name: str) -> bytes:
        return self.buckets[bucket][name][-1][1]

    def list_buckets(self, project_id: str) -> Iterator[BucketInfo]:
        if self.fail_list_buckets:
            raise StorageError("simulated bucket listing failure")
        for name in sorted(self.buckets):
            yield BucketInfo(name)

    def get_bucket(self, bucket: str) -> BucketInfo:
        if bucket not in self.buckets:
            raise ObjectNotFoundError(f"bucket {bucket!r} does not exist")
        return BucketInfo(bucket)

    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[ObjectAttributes]:
        self.get_bucket(bucket)
        for name in sorted(self.buckets[bucket]):
            if self.fail_list_objects:
                raise StorageError("simulated object listing failure")
            if name.startswith(prefix):
                yield self._attrs(bucket, name)

    def get_attributes(self, bucket: str, name: str) -> ObjectAttributes:
        if self.fail_attributes:
            raise StorageError("simulated metadata failure")
        self.get_bucket(bucket)
        if name not in self.buckets[bucket]:
            raise ObjectNotFoundError(f"object {bucket}/{name} does not exist")
        return self._attrs(bucket, name)

    def open_reader(self, bucket: str, name: str, generation: str) -> Any:
        if self.fail_open:
            raise StorageError("simulated open failure")
        self.reads.append((bucket, name, generation))
        for gen, data, _ in self.buckets[bucket][name]:
            if str(gen) == generation:
                if self.fail_read:
                    return _FailingReader()
                return io.BytesIO(data)
        raise StaleGenerationError(f"no generation {generation} for {bucket}/{name}")

    def new_writer(self, bucket: str, name: str, content_type: str) -> FakeWriter:
        return FakeWriter(self, bucket, name, content_type)


class _FailingReader:
    closed = False

    def read(self, size: int = -1) -> bytes:
        raise StorageError("simulated drain failure")

    def close(self) -> None:
        self.closed = True


def basic_auth_header(username: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def fake_store() -> FakeObjectStore:
    """Bucket "demo" holding notes.txt = b"hello", plus an "other" bucket."""
    return FakeObjectStore({"demo": {"notes.txt": b"hello"}, "other": {"secret.txt": b"top secret"}})


@pytest.fixture
def credentials() -> tuple[Credential, ...]:
    return (Credential(login="admin", salt="pepper", digest=hash_secret("s3cret", "pepper")),)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return basic_auth_header("admin", "s3cret")


@pytest.fixture
def make_client(fake_store: FakeObjectStore) -> Callable[..., TestClient]:
    """Factory building a TestClient around create_app with a fake store."""
    from main import create_app

    def _make(config: Optional[EditorConfig] = None, store: Any = None, **overrides: Any) -> TestClient:
        if config is None:
            config = EditorConfig(**overrides)
        target = fake_store if store is None else store
        app = create_app(config=config, store_factory=lambda: target)
        return TestClient(app)

    return _make
