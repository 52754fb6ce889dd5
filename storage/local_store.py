"""
Local filesystem object store backend.

Layout:
    {root}/
    └── {bucket}/
        ├── notes.txt
        ├── docs/readme.md
        └── .blob-editor/          (hidden from listings)
            ├── meta/{name}.json   (content type + generation)
            └── tmp/               (in-flight uploads)

Every finalized write gets a new generation, strictly greater than the
previous one, so a read pinned to an older generation is refused.

Environment Variables:
    BLOB_EDITOR_LOCAL_ROOT: Root directory holding one directory per bucket
"""

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO, Iterator, Optional

from storage.errors import ObjectNotFoundError, StaleGenerationError, StorageError
from storage.object_store import BucketInfo, ObjectAttributes

logger = logging.getLogger(__name__)

META_DIR = ".blob-editor"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class LocalObjectWriter:
    """Streams content to a temp file and moves it into place on close()."""

    def __init__(self, store: "LocalObjectStore", bucket: str, name: str, content_type: str):
        self._store = store
        self._bucket = bucket
        self._name = name
        self._content_type = content_type
        tmp_dir = store.bucket_path(bucket) / META_DIR / "tmp"
        try:
            tmp_dir.mkdir(parents=True, exist_ok=True)
            self._file: Optional[BinaryIO] = tempfile.NamedTemporaryFile(
                dir=tmp_dir, prefix="upload-", delete=False
            )
        except OSError as exc:
            raise StorageError(f"Cannot start upload of {bucket}/{name}: {exc}") from exc

    def write(self, data: bytes) -> int:
        if self._file is None:
            raise StorageError(f"Writer for {self._bucket}/{self._name} is closed")
        try:
            return self._file.write(data)
        except OSError as exc:
            raise StorageError(f"Write to {self._bucket}/{self._name} failed: {exc}") from exc

    def close(self) -> ObjectAttributes:
        if self._file is None:
            raise StorageError(f"Writer for {self._bucket}/{self._name} is closed")
        tmp = self._file
        self._file = None
        try:
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp.close()
            return self._store.commit(self._bucket, self._name, Path(tmp.name), self._content_type)
        except OSError as exc:
            _unlink_quietly(Path(tmp.name))
            raise StorageError(f"Finalizing {self._bucket}/{self._name} failed: {exc}") from exc

    def abort(self) -> None:
        if self._file is None:
            return
        tmp = self._file
        self._file = None
        tmp.close()
        _unlink_quietly(Path(tmp.name))


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


class LocalObjectStore:
    """ObjectStore implementation backed by a directory tree."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def bucket_path(self, bucket: str) -> Path:
        if not bucket or bucket.startswith(".") or "/" in bucket or "\\" in bucket:
            raise ObjectNotFoundError(f"Invalid bucket name: {bucket!r}")
        return self.root / bucket

    def _object_path(self, bucket: str, name: str) -> Path:
        parts = PurePosixPath(name).parts
        if not name or name.startswith("/") or any(p in ("..", ".") for p in parts):
            raise ObjectNotFoundError(f"Invalid object name: {name!r}")
        if parts[0] == META_DIR:
            raise ObjectNotFoundError(f"Invalid object name: {name!r}")
        return self.bucket_path(bucket).joinpath(*parts)

    def _meta_path(self, bucket: str, name: str) -> Path:
        return self.bucket_path(bucket) / META_DIR / "meta" / f"{name}.json"

    def _read_meta(self, bucket: str, name: str, path: Path) -> dict[str, Any]:
        try:
            with open(self._meta_path(bucket, name), encoding="utf-8") as f:
                meta = json.load(f)
        except FileNotFoundError:
            # Placed on disk without going through the store
            meta = {}
        except (OSError, ValueError) as exc:
            raise StorageError(f"Corrupt metadata for {bucket}/{name}: {exc}") from exc
        if "generation" not in meta:
            meta["generation"] = path.stat().st_mtime_ns
        meta.setdefault("content_type", DEFAULT_CONTENT_TYPE)
        return meta

    # ------------------------------------------------------------------
    # ObjectStore
    # ------------------------------------------------------------------

    def list_buckets(self, project_id: str) -> Iterator[BucketInfo]:
        try:
            entries = sorted(os.scandir(self.root), key=lambda e: e.name)
        except OSError as exc:
            raise StorageError(f"Cannot list buckets under {self.root}: {exc}") from exc
        for entry in entries:
            if entry.is_dir() and not entry.name.startswith("."):
                yield BucketInfo(name=entry.name)

    def get_bucket(self, bucket: str) -> BucketInfo:
        if not self.bucket_path(bucket).is_dir():
            raise ObjectNotFoundError(f"Bucket not found: {bucket}")
        return BucketInfo(name=bucket)

    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[ObjectAttributes]:
        base = self.bucket_path(bucket)
        if not base.is_dir():
            raise ObjectNotFoundError(f"Bucket not found: {bucket}")
        names = []
        for dirpath, dirnames, filenames in os.walk(base):
            if Path(dirpath) == base and META_DIR in dirnames:
                dirnames.remove(META_DIR)
            for filename in filenames:
                rel = (Path(dirpath) / filename).relative_to(base).as_posix()
                if rel.startswith(prefix):
                    names.append(rel)
        for name in sorted(names):
            yield self.get_attributes(bucket, name)

    def get_attributes(self, bucket: str, name: str) -> ObjectAttributes:
        path = self._object_path(bucket, name)
        try:
            size = path.stat().st_size
            meta = self._read_meta(bucket, name, path)
        except FileNotFoundError as exc:
            raise ObjectNotFoundError(f"Object not found: {bucket}/{name}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot stat {bucket}/{name}: {exc}") from exc
        return ObjectAttributes(
            bucket=bucket,
            name=name,
            size=size,
            content_type=meta["content_type"],
            generation=str(meta["generation"]),
        )

    def open_reader(self, bucket: str, name: str, generation: str) -> BinaryIO:
        path = self._object_path(bucket, name)
        with self._lock:
            try:
                handle = open(path, "rb")
            except FileNotFoundError as exc:
                raise ObjectNotFoundError(f"Object not found: {bucket}/{name}") from exc
            except OSError as exc:
                raise StorageError(f"Cannot open {bucket}/{name}: {exc}") from exc
            current = str(self._read_meta(bucket, name, path)["generation"])
        if current != generation:
            handle.close()
            raise StaleGenerationError(
                f"{bucket}/{name} is at generation {current}, not {generation}"
            )
        return handle

    def new_writer(self, bucket: str, name: str, content_type: str) -> LocalObjectWriter:
        self._object_path(bucket, name)
        self.get_bucket(bucket)
        return LocalObjectWriter(self, bucket, name, content_type)

    def commit(self, bucket: str, name: str, tmp_path: Path, content_type: str) -> ObjectAttributes:
        """Move a finished upload into place and record its new generation."""
        path = self._object_path(bucket, name)
        meta_path = self._meta_path(bucket, name)
        with self._lock:
            previous = 0
            if path.exists():
                previous = int(self._read_meta(bucket, name, path)["generation"])
            generation = max(time.time_ns(), previous + 1)

            path.parent.mkdir(parents=True, exist_ok=True)
            meta_path.parent.mkdir(parents=True, exist_ok=True)
            os.replace(tmp_path, path)
            meta_tmp = meta_path.with_name(meta_path.name + ".tmp")
            with open(meta_tmp, "w", encoding="utf-8") as f:
                json.dump({"content_type": content_type, "generation": generation}, f)
            os.replace(meta_tmp, meta_path)
            size = path.stat().st_size

        logger.debug("Committed %s/%s generation=%d size=%d", bucket, name, generation, size)
        return ObjectAttributes(
            bucket=bucket,
            name=name,
            size=size,
            content_type=content_type,
            generation=str(generation),
        )
