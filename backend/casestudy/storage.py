from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote
from uuid import uuid4

from casestudy.config import Settings
from casestudy.errors import InvalidInput, StorageError

logger = logging.getLogger("casestudy.storage")

LOCAL_ROUTE_PREFIX = "/uploads"


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str
    size_bytes: int
    content_type: str


def _normalize_backend(value: str) -> str:
    normalized = (value or "").strip().lower()
    if normalized in {"local", "filesystem", "fs"}:
        return "local"
    if normalized in {"s3"}:
        return "s3"
    raise StorageError(f"Unsupported STORAGE_BACKEND '{value}'. Use 'local' or 's3'.")


def _safe_file_name(file_name: str) -> str:
    name = Path(str(file_name or "").replace("\\", "/")).name.strip()
    return name or "upload.bin"


class ObjectStore:
    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self._settings = settings
        self._backend = _normalize_backend(settings.storage_backend)
        self._client = client
        if self._backend == "s3" and self._client is None:
            self._client = self._create_s3_client()

    @property
    def backend(self) -> str:
        return self._backend

    def save_transcript(self, *, file_name: str, content_type: str, content: bytes) -> StoredObject:
        safe_name = _safe_file_name(file_name)
        self._check_upload(safe_name, content)
        key = f"raw/{uuid4().hex}_{safe_name}"
        content_type = content_type or "application/octet-stream"

        if self._backend == "local":
            destination = self.local_path_for(key)
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                destination.write_bytes(content)
            except OSError as exc:
                raise StorageError(f"Failed to write transcript to local storage: {exc}") from exc
            url = f"{self._settings.public_base_url.rstrip('/')}{LOCAL_ROUTE_PREFIX}/{quote(key)}"
        else:
            url = self._put_s3_object(key, content_type, content)

        logger.info(
            "transcript_stored",
            extra={
                "event": "transcript_stored",
                "backend": self._backend,
                "key": key,
                "size_bytes": len(content),
            },
        )
        return StoredObject(key=key, url=url, size_bytes=len(content), content_type=content_type)

    def local_path_for(self, key: str) -> Path:
        root = Path(self._settings.storage_root).resolve()
        candidate = (root / key).resolve()
        if root not in candidate.parents:
            raise InvalidInput(f"Invalid storage key '{key}'.")
        return candidate

    def ping(self) -> None:
        if self._backend == "local":
            root = Path(self._settings.storage_root)
            root.mkdir(parents=True, exist_ok=True)
            if not root.is_dir():
                raise StorageError(f"Storage root '{root}' is not a directory.")
            return
        try:
            self._client.head_bucket(Bucket=self._bucket())
        except Exception as exc:  # pragma: no cover - depends on AWS runtime integration
            raise StorageError(f"S3 bucket check failed: {exc}") from exc

    def _check_upload(self, safe_name: str, content: bytes) -> None:
        if not content:
            raise InvalidInput("Uploaded file is empty.")
        if len(content) > self._settings.max_upload_file_bytes:
            raise InvalidInput(
                f"File '{safe_name}' exceeds max size of {self._settings.max_upload_file_bytes} bytes."
            )
        allowed = self._settings.allowed_upload_extensions_set
        suffix = Path(safe_name).suffix.lower()
        if allowed and suffix not in allowed:
            raise InvalidInput(
                f"Unsupported file type '{suffix or safe_name}'. Allowed: {', '.join(sorted(allowed))}."
            )

    def _bucket(self) -> str:
        bucket = str(self._settings.s3_bucket or "").strip()
        if not bucket:
            raise StorageError("S3 storage backend selected but S3_BUCKET is not configured.")
        return bucket

    def _put_s3_object(self, key: str, content_type: str, content: bytes) -> str:
        bucket = self._bucket()
        prefix = str(self._settings.s3_prefix or "").strip().strip("/")
        object_key = f"{prefix}/{key}" if prefix else key
        try:
            self._client.put_object(Bucket=bucket, Key=object_key, Body=content, ContentType=content_type)
        except Exception as exc:
            raise StorageError(f"Failed to write transcript to S3 (bucket={bucket}, key={object_key}): {exc}") from exc
        return self._s3_url(bucket, object_key)

    def _s3_url(self, bucket: str, object_key: str) -> str:
        public_base = str(self._settings.s3_public_base_url or "").strip().rstrip("/")
        if public_base:
            return f"{public_base}/{quote(object_key)}"
        if self._settings.s3_presign_expiry_seconds > 0:
            try:
                return self._client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": bucket, "Key": object_key},
                    ExpiresIn=self._settings.s3_presign_expiry_seconds,
                )
            except Exception as exc:
                raise StorageError(f"Failed to presign transcript URL: {exc}") from exc
        return f"https://{bucket}.s3.{self._settings.aws_region}.amazonaws.com/{quote(object_key)}"

    def _create_s3_client(self) -> Any:
        try:
            import boto3  # type: ignore
        except ImportError as exc:
            raise StorageError("boto3 is required for S3 storage backend.") from exc

        return boto3.client("s3", region_name=self._settings.aws_region)
