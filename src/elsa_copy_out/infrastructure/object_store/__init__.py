"""Manifest object store implementations."""

from elsa_copy_out.infrastructure.object_store.s3_manifest_object_store import (
    S3ManifestObjectStore,
)

__all__ = ["S3ManifestObjectStore"]
