"""
S3-compatible object store backend (AWS S3 and MinIO).

Configuration comes from EditorConfig (see config/editor_config.py):
    S3_ENDPOINT_URL: MinIO or custom S3-compatible endpoint (optional)
    S3_FORCE_PATH_STYLE: Use path-style addressing (default: true for MinIO)
    S3_REGION: AWS region (default: us-east-1)
    AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: picked up by boto3

Generation tokens:
    On versioned buckets the token is the object's VersionId and reads are
    pinned with VersionId=. On unversioned buckets the token is the quoted
    ETag and reads are pinned with IfMatch=, so a stale intermediate copy is
    rejected by the store instead of being served.
"""

import base64
import hashlib
import io
import logging
from typing import Any, Iterator, Optional

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from storage.errors import ObjectNotFoundError, StaleGenerationError, StorageError
from storage.object_store import BucketInfo, ObjectAttributes

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound", "NoSuchVersion"}
_PRECONDITION_CODES = {"412", "PreconditionFailed"}


def create_s3_client(
    endpoint_url: Optional[str] = None,
    region: str = "us-east-1",
    force_path_style: bool = True,
    timeout_seconds: float = 30.0,
) -> BaseClient:
    """
    Create a boto3 S3 client configured for AWS S3 or MinIO.

    Store operations are never retried: a transient failure is reported to
    the caller, who may resubmit. Socket timeouts are bounded by the request
    deadline so in-flight calls cannot outlive the request.
    """
    config_kwargs: dict[str, Any] = {
        "signature_version": "s3v4",
        "retries": {"max_attempts": 1, "mode": "standard"},
        "connect_timeout": timeout_seconds,
        "read_timeout": timeout_seconds,
    }
    # Path-style addressing is required for MinIO
    if force_path_style:
        config_kwargs["s3"] = {"addressing_style": "path"}

    client_kwargs: dict[str, Any] = {"config": Config(**config_kwargs)}
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url

    return boto3.client("s3", region_name=region, **client_kwargs)


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _translate(exc: Exception, action: str, bucket: str, key: str = "") -> StorageError:
    """Map a boto exception to the storage error hierarchy."""
    where = f"s3://{bucket}/{key}" if key else f"s3://{bucket}"
    message = f"S3 {action} failed for {where}: {exc}"
    logger.warning(message)
    if isinstance(exc, ClientError):
        code = _error_code(exc)
        if code in _NOT_FOUND_CODES:
            return ObjectNotFoundError(message)
        if code in _PRECONDITION_CODES:
            return StaleGenerationError(message)
    return StorageError(message)


def _version_id(resp: dict) -> Optional[str]:
    version = resp.get("VersionId")
    # Unversioned or suspended buckets report the literal "null"
    if not version or version == "null":
        return None
    return version


def _pin_kwargs(generation: str) -> dict[str, str]:
    # ETags are always double-quoted; version ids never are
    if generation.startswith('"'):
        return {"IfMatch": generation}
    return {"VersionId": generation}


class S3ObjectReader:
    """Wraps a botocore StreamingBody so drain failures surface as StorageError."""

    def __init__(self, body: Any, bucket: str, name: str):
        self._body = body
        self._bucket = bucket
        self._name = name

    def read(self, size: int = -1) -> bytes:
        try:
            if size is None or size < 0:
                return self._body.read()
            return self._body.read(size)
        except (BotoCoreError, OSError) as exc:
            raise _translate(exc, "read", self._bucket, self._name) from exc

    def close(self) -> None:
        self._body.close()


class S3ObjectWriter:
    """Buffers object content and uploads it on close()."""

    def __init__(self, client: BaseClient, bucket: str, name: str, content_type: str):
        self._client = client
        self._bucket = bucket
        self._name = name
        self._content_type = content_type
        self._buffer: Optional[io.BytesIO] = io.BytesIO()

    def write(self, data: bytes) -> int:
        if self._buffer is None:
            raise StorageError(f"Writer for s3://{self._bucket}/{self._name} is closed")
        return self._buffer.write(data)

    def close(self) -> ObjectAttributes:
        if self._buffer is None:
            raise StorageError(f"Writer for s3://{self._bucket}/{self._name} is closed")
        body = self._buffer.getvalue()
        self._buffer = None
        # The store rejects the upload if the received bytes do not hash to this
        content_md5 = base64.b64encode(hashlib.md5(body).digest()).decode("ascii")
        try:
            resp = self._client.put_object(
                Bucket=self._bucket,
                Key=self._name,
                Body=body,
                ContentType=self._content_type,
                ContentMD5=content_md5,
            )
            generation = _version_id(resp) or resp["ETag"]
            head = self._client.head_object(
                Bucket=self._bucket, Key=self._name, **_pin_kwargs(generation)
            )
        except (ClientError, BotoCoreError, KeyError) as exc:
            raise _translate(exc, "upload", self._bucket, self._name) from exc

        logger.debug("Uploaded %d bytes to s3://%s/%s", len(body), self._bucket, self._name)
        return ObjectAttributes(
            bucket=self._bucket,
            name=self._name,
            size=int(head.get("ContentLength", 0)),
            content_type=head.get("ContentType") or self._content_type,
            generation=generation,
        )

    def abort(self) -> None:
        self._buffer = None


class S3ObjectStore:
    """ObjectStore implementation on top of a boto3 S3 client."""

    def __init__(self, client: BaseClient):
        self.client = client

    def list_buckets(self, project_id: str) -> Iterator[BucketInfo]:
        # S3 has no project scoping: the credentials define what is visible
        try:
            resp = self.client.list_buckets()
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "list buckets", project_id or "*") from exc
        for bucket in resp.get("Buckets", []):
            yield BucketInfo(name=bucket["Name"])

    def get_bucket(self, bucket: str) -> BucketInfo:
        if not bucket:
            raise ObjectNotFoundError("bucket name is empty")
        try:
            self.client.head_bucket(Bucket=bucket)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "head bucket", bucket) from exc
        return BucketInfo(name=bucket)

    def list_objects(self, bucket: str, prefix: str = "") -> Iterator[ObjectAttributes]:
        paginator = self.client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    yield ObjectAttributes(
                        bucket=bucket,
                        name=item["Key"],
                        size=int(item.get("Size", 0)),
                        content_type="",
                        generation=item.get("ETag", ""),
                    )
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "list objects", bucket, prefix) from exc

    def get_attributes(self, bucket: str, name: str) -> ObjectAttributes:
        try:
            resp = self.client.head_object(Bucket=bucket, Key=name)
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "head object", bucket, name) from exc
        return ObjectAttributes(
            bucket=bucket,
            name=name,
            size=int(resp.get("ContentLength", 0)),
            content_type=resp.get("ContentType") or "application/octet-stream",
            generation=_version_id(resp) or resp.get("ETag", ""),
        )

    def open_reader(self, bucket: str, name: str, generation: str) -> S3ObjectReader:
        if not generation:
            raise StaleGenerationError(f"No generation known for s3://{bucket}/{name}")
        try:
            resp = self.client.get_object(Bucket=bucket, Key=name, **_pin_kwargs(generation))
        except (ClientError, BotoCoreError) as exc:
            raise _translate(exc, "get object", bucket, name) from exc
        return S3ObjectReader(resp["Body"], bucket, name)

    def new_writer(self, bucket: str, name: str, content_type: str) -> S3ObjectWriter:
        return S3ObjectWriter(self.client, bucket, name, content_type)
