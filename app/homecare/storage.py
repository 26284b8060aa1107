"""
Object storage for application documents: local disk for development and
tests, any S3-compatible bucket in production.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError


class StorageError(RuntimeError):
    pass


class DocumentStorage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


def _normalize_key(key: str) -> str:
    parts = PurePosixPath(key.replace("\\", "/").lstrip("/")).parts
    if not parts or ".." in parts:
        raise StorageError(f"Invalid storage key: {key!r}")
    return "/".join(parts)


@dataclass(frozen=True)
class LocalDocumentStorage(DocumentStorage):
    root: Path

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        path = self.root / _normalize_key(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Local write failed for {key}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        path = self.root / _normalize_key(key)
        if not path.is_file():
            raise StorageError(f"Missing stored object: {key}")
        return path.open("rb")

    def delete(self, key: str) -> None:
        try:
            (self.root / _normalize_key(key)).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Local delete failed for {key}: {e}") from e


@dataclass(frozen=True)
class S3DocumentStorage(DocumentStorage):
    bucket: str
    endpoint: str = ""
    region: str = ""
    access_key_id: str = ""
    secret_access_key: str = field(default="", repr=False)

    def _client(self) -> Any:
        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Key": _normalize_key(key), "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            self._client().put_object(**kwargs)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 upload failed for {key}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        try:
            obj = self._client().get_object(Bucket=self.bucket, Key=_normalize_key(key))
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 download failed for {key}: {e}") from e
        return obj["Body"]

    def delete(self, key: str) -> None:
        try:
            self._client().delete_object(Bucket=self.bucket, Key=_normalize_key(key))
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 delete failed for {key}: {e}") from e


def storage_from_config(config: dict) -> DocumentStorage:
    if (config.get("STORAGE_BACKEND") or "local").strip().lower() == "s3":
        return S3DocumentStorage(
            bucket=(config.get("S3_BUCKET") or "").strip(),
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
        )
    root = config.get("STORAGE_LOCAL_ROOT") or os.path.join(os.getcwd(), "storage")
    return LocalDocumentStorage(root=Path(root))
