"""
BorrowTrace Repository
Introductory remarks: This module is part of the BorrowTrace codebase.

Persistence for exported graph documents (local directory or S3).
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from borrowtrace.errors import ExportStoreError
from borrowtrace.utils import env

_LOGGER = logging.getLogger(__name__)

_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass(frozen=True)
class StoredExport:
    """Location of a persisted export document."""

    name: str
    uri: str
    bytes_written: int


class ExportStore(Protocol):
    """Persist and retrieve exported documents by name."""

    def save(
        self, name: str, document: str, *, content_type: str = ...
    ) -> StoredExport:
        """Write ``document`` under ``name``, replacing any previous one."""

    def load(self, name: str) -> str:
        """Return the stored document or raise ExportStoreError."""

    def list_exports(self) -> List[str]:
        """Names of every stored document, sorted."""


def _validate_name(name: str) -> str:
    cleaned = name.strip()
    if (
        not cleaned
        or "/" in cleaned
        or "\\" in cleaned
        or cleaned in {".", ".."}
    ):
        raise ExportStoreError(f"Invalid export name '{name}'")
    return cleaned


class LocalExportStore:
    """Write exports into a local directory, atomically."""

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = Path(base_dir)
        self._base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def save(
        self,
        name: str,
        document: str,
        *,
        content_type: str = "application/json",
    ) -> StoredExport:
        """
        save: Write through a temporary file so readers never see a
        partially written document.
        :param name:
        :param document:
        :param content_type:
        :returns:
        """

        destination = self._base_dir / _validate_name(name)
        data = document.encode("utf-8")
        handle = tempfile.NamedTemporaryFile(
            dir=self._base_dir, prefix=".export-", delete=False
        )
        temp_path = Path(handle.name)
        try:
            with handle:
                handle.write(data)
            os.replace(temp_path, destination)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise ExportStoreError(
                f"Failed to write export '{name}': {exc}"
            ) from exc
        _LOGGER.info("Stored export %s (%d bytes)", destination, len(data))
        return StoredExport(
            name=destination.name,
            uri=destination.resolve().as_uri(),
            bytes_written=len(data),
        )

    def load(self, name: str) -> str:
        path = self._base_dir / _validate_name(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ExportStoreError(f"Export '{name}' not found") from exc
        except OSError as exc:
            raise ExportStoreError(
                f"Failed to read export '{name}': {exc}"
            ) from exc

    def list_exports(self) -> List[str]:
        return sorted(
            path.name
            for path in self._base_dir.iterdir()
            if path.is_file() and not path.name.startswith(".export-")
        )


class S3ExportStore:
    """Store exports as objects in an S3 bucket."""

    def __init__(
        self,
        bucket: str,
        *,
        object_prefix: str = "",
        client: Any | None = None,
    ) -> None:
        """
        __init__: Function description.
        :param bucket:
        :param object_prefix:
        :param client:
        :returns:
        """

        if not bucket:
            raise ExportStoreError("bucket name must be provided")
        self._bucket = bucket
        self._object_prefix = object_prefix.strip("/")
        self._s3 = client if client is not None else _build_s3_client()

    def _object_key(self, name: str) -> str:
        prefix = f"{self._object_prefix}/" if self._object_prefix else ""
        return f"{prefix}{_validate_name(name)}"

    def save(
        self,
        name: str,
        document: str,
        *,
        content_type: str = "application/json",
    ) -> StoredExport:
        key = self._object_key(name)
        data = document.encode("utf-8")
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            _LOGGER.error(
                "Failed to store export bucket=%s key=%s: %s",
                self._bucket,
                key,
                exc,
            )
            raise ExportStoreError(
                f"Failed to store export '{name}'"
            ) from exc
        _LOGGER.info(
            "Stored export s3://%s/%s (%d bytes)",
            self._bucket,
            key,
            len(data),
        )
        return StoredExport(
            name=name,
            uri=f"s3://{self._bucket}/{key}",
            bytes_written=len(data),
        )

    def load(self, name: str) -> str:
        key = self._object_key(name)
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in _MISSING_KEY_CODES:
                raise ExportStoreError(f"Export '{name}' not found") from exc
            _LOGGER.error(
                "ClientError fetching export key=%s: %s", key, exc
            )
            raise ExportStoreError(
                f"Failed to load export '{name}'"
            ) from exc
        except BotoCoreError as exc:
            _LOGGER.error(
                "BotoCoreError fetching export key=%s: %s", key, exc
            )
            raise ExportStoreError(
                f"Failed to load export '{name}'"
            ) from exc
        return response["Body"].read().decode("utf-8")

    def list_exports(self) -> List[str]:
        prefix = f"{self._object_prefix}/" if self._object_prefix else ""
        names: List[str] = []
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            pages = paginator.paginate(Bucket=self._bucket, Prefix=prefix)
            for page in pages:
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    if key.startswith(prefix) and key[len(prefix):]:
                        names.append(key[len(prefix):])
        except (ClientError, BotoCoreError) as exc:
            raise ExportStoreError(
                f"Failed to list exports in '{self._bucket}'"
            ) from exc
        return sorted(names)


def _build_s3_client() -> Any:
    region = os.environ.get("AWS_REGION") or os.environ.get(
        "AWS_DEFAULT_REGION"
    )
    client_kwargs: Dict[str, Any] = {
        "config": Config(retries={"max_attempts": 5, "mode": "standard"}),
    }
    if region:
        client_kwargs["region_name"] = region
    return boto3.client("s3", **client_kwargs)


def build_export_store_from_env() -> ExportStore:
    """Pick S3 when a bucket is configured, otherwise a local directory."""

    bucket = env.export_bucket()
    if bucket:
        return S3ExportStore(bucket, object_prefix=env.export_prefix())
    return LocalExportStore(env.export_dir())
