from __future__ import annotations

import asyncio
import io
from typing import Any

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from elsa_copy_out.domain.errors import ManifestNotFoundError
from elsa_copy_out.infrastructure.object_store import S3ManifestObjectStore


class FakeS3Client:
    def __init__(self, response: dict[str, Any] | None = None, error: Exception | None = None):
        self.response = response or {}
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append((Bucket, Key))
        if self.error is not None:
            raise self.error
        return self.response


def _store(client: FakeS3Client) -> S3ManifestObjectStore:
    return S3ManifestObjectStore(region="ap-southeast-2", s3_client_factory=lambda _: client)


def test_read_object_returns_streamed_body() -> None:
    client = FakeS3Client({"Body": io.BytesIO(b"bucket,key\nsrc,a.bam\n")})

    body = asyncio.run(_store(client).read_object("manifests", "files.csv"))

    assert body == b"bucket,key\nsrc,a.bam\n"
    assert client.calls == [("manifests", "files.csv")]


def test_missing_object_raises_not_found() -> None:
    client = FakeS3Client(
        error=ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
    )

    with pytest.raises(ManifestNotFoundError, match="does not exist"):
        asyncio.run(_store(client).read_object("manifests", "files.csv"))


def test_access_denied_raises_not_found_with_reason() -> None:
    client = FakeS3Client(
        error=ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "GetObject")
    )

    with pytest.raises(ManifestNotFoundError, match="AccessDenied"):
        asyncio.run(_store(client).read_object("manifests", "files.csv"))


def test_connection_failure_raises_not_found() -> None:
    client = FakeS3Client(error=EndpointConnectionError(endpoint_url="https://s3.example"))

    with pytest.raises(ManifestNotFoundError, match="could not be read"):
        asyncio.run(_store(client).read_object("manifests", "files.csv"))
