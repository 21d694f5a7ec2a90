"""S3-backed manifest object store."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Protocol, cast

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from elsa_copy_out.domain.errors import ManifestNotFoundError
from elsa_copy_out.domain.ports import ManifestObjectStore

_MISSING_OBJECT_ERROR_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "404", "NotFound"})


class S3Client(Protocol):
    """Subset of S3 client operations used to read manifests."""

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        """Return object body and metadata."""


class S3ManifestObjectStore(ManifestObjectStore):
    """Read whole manifest objects from S3."""

    def __init__(
        self,
        region: str = "us-east-1",
        s3_client_factory: Callable[[str], S3Client] | None = None,
    ) -> None:
        self._region = region
        self._s3_client_factory = s3_client_factory or self._build_default_s3_client
        self._client: S3Client | None = None

    async def read_object(self, bucket: str, key: str) -> bytes:
        """Return the object body."""

        client = self._get_client()
        try:
            response = await asyncio.to_thread(client.get_object, Bucket=bucket, Key=key)
            body = response.get("Body")
            if body is None:
                raise ManifestNotFoundError(f"s3://{bucket}/{key} returned no body.")
            if isinstance(body, bytes):
                return body
            return await asyncio.to_thread(body.read)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_OBJECT_ERROR_CODES:
                raise ManifestNotFoundError(f"Manifest s3://{bucket}/{key} does not exist.") from exc
            raise ManifestNotFoundError(
                f"Manifest s3://{bucket}/{key} could not be read: {code or exc}"
            ) from exc
        except BotoCoreError as exc:
            raise ManifestNotFoundError(
                f"Manifest s3://{bucket}/{key} could not be read: {exc}"
            ) from exc

    def _get_client(self) -> S3Client:
        if self._client is None:
            self._client = self._s3_client_factory(self._region)
        return self._client

    def _build_default_s3_client(self, region: str) -> S3Client:
        return cast(S3Client, boto3.client("s3", region_name=region))


__all__ = ["S3ManifestObjectStore"]
