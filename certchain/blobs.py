# certchain/blobs.py
"""
Blob storage for the certificate PDF and the student photo.

The record core only ever sees the opaque reference returned by `save`;
it never reads blob bytes. Two backends: a local directory (served under
/uploads by the API) and an S3-compatible bucket.
"""

import logging
import os
import secrets
from abc import ABC, abstractmethod
from pathlib import Path
from time import time
from typing import BinaryIO, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from certchain.config import DEFAULT_MAX_UPLOAD_BYTES, Settings
from certchain.errors import BlobRejectedError

logger = logging.getLogger(__name__)

BLOB_KINDS = ("pdf", "photo")


def _check_content_type(kind: str, content_type: Optional[str]) -> None:
    content_type = (content_type or "").lower()
    if kind == "pdf" and content_type != "application/pdf":
        raise BlobRejectedError("Only PDF files are allowed for the certificate document.")
    if kind == "photo" and not content_type.startswith("image/"):
        raise BlobRejectedError("Only image files are allowed for the student photo.")


class BlobStore(ABC):
    def __init__(self, max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES):
        self.max_bytes = max_bytes

    def new_ref(self, kind: str, filename: Optional[str]) -> str:
        ext = os.path.splitext(filename or "")[1].lower()
        return f"{kind}-{int(time() * 1000)}-{secrets.randbelow(1_000_000)}{ext}"

    def validate(self, kind: str, content_type: Optional[str], size: int) -> None:
        if kind not in BLOB_KINDS:
            raise BlobRejectedError(f"Unknown blob kind: {kind!r}")
        _check_content_type(kind, content_type)
        if size == 0:
            raise BlobRejectedError(f"The uploaded {kind} file is empty.")
        if size > self.max_bytes:
            raise BlobRejectedError(
                f"The uploaded {kind} file exceeds the {self.max_bytes} byte limit."
            )

    def read_limited(self, stream: BinaryIO) -> bytes:
        """
        Read an upload stream, stopping one byte past the size limit so an
        oversized upload is never buffered whole. `validate` rejects the result.
        """
        return stream.read(self.max_bytes + 1)

    def save(self, kind: str, filename: Optional[str], content_type: Optional[str], data: bytes) -> str:
        """Validate and persist one upload. Returns its opaque reference."""
        self.validate(kind, content_type, len(data))
        ref = self.new_ref(kind, filename)
        self._write(ref, content_type, data)
        logger.info("Saved %s blob %s (%d bytes)", kind, ref, len(data))
        return ref

    @abstractmethod
    def ensure(self) -> None:
        """Create the backing directory or bucket if needed."""

    @abstractmethod
    def _write(self, ref: str, content_type: Optional[str], data: bytes) -> None:
        ...

    @abstractmethod
    def exists(self, ref: str) -> bool:
        ...

    @abstractmethod
    def locator(self, ref: str) -> str:
        ...


class LocalBlobStore(BlobStore):
    """Blobs as files under one directory, served by the API at /uploads/<ref>."""

    def __init__(self, root: Path, url_prefix: str = "/uploads", **kwargs):
        super().__init__(**kwargs)
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def ensure(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, ref: str) -> Optional[Path]:
        # refs are flat file names; anything else cannot be ours
        if not ref or ref.startswith(".") or Path(ref).name != ref:
            return None
        return self.root / ref

    def _write(self, ref, content_type, data):
        self.ensure()
        self._path(ref).write_bytes(data)

    def exists(self, ref: str) -> bool:
        path = self._path(ref)
        return path is not None and path.is_file()

    def locator(self, ref: str) -> str:
        return f"{self.url_prefix}/{ref}"


class S3BlobStore(BlobStore):
    def __init__(self, client, bucket: str, public_base: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.s3 = client
        self.bucket = bucket
        self.public_base = (public_base or "").rstrip("/")

    def ensure(self) -> None:
        try:
            self.s3.create_bucket(Bucket=self.bucket)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code not in ("BucketAlreadyOwnedByYou", "BucketAlreadyExists"):
                raise

    def _write(self, ref, content_type, data):
        self.s3.put_object(Bucket=self.bucket, Key=ref, Body=data, ContentType=content_type)

    def exists(self, ref: str) -> bool:
        try:
            self.s3.head_object(Bucket=self.bucket, Key=ref)
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise

    def locator(self, ref: str) -> str:
        if self.public_base:
            return f"{self.public_base}/{self.bucket}/{ref}"
        return f"s3://{self.bucket}/{ref}"


def make_blob_store(settings: Settings) -> BlobStore:
    if settings.blob_backend == "s3":
        s3 = boto3.client(
            "s3",
            endpoint_url=settings.s3_endpoint,
            aws_access_key_id=settings.s3_access_key,
            aws_secret_access_key=settings.s3_secret_key,
            config=Config(signature_version="s3v4"),
            region_name="us-east-1",
        )
        return S3BlobStore(
            s3, settings.s3_bucket, public_base=settings.s3_endpoint,
            max_bytes=settings.max_upload_bytes,
        )
    if settings.blob_backend != "local":
        raise ValueError(f"unknown blob backend: {settings.blob_backend!r}")
    return LocalBlobStore(settings.uploads_dir, max_bytes=settings.max_upload_bytes)
