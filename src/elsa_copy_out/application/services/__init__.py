"""Application services public API."""

from elsa_copy_out.application.services.batch_dispatcher import (
    BatchDispatcher,
    DispatchSummary,
)
from elsa_copy_out.application.services.batcher import build_batches
from elsa_copy_out.application.services.copy_out_service import (
    BUILT_IN_DEFAULTS,
    CopyOutService,
    apply_defaults,
)
from elsa_copy_out.application.services.manifest_reader import (
    ManifestLocation,
    ManifestReader,
    parse_manifest,
)

__all__ = [
    "BUILT_IN_DEFAULTS",
    "BatchDispatcher",
    "CopyOutService",
    "DispatchSummary",
    "ManifestLocation",
    "ManifestReader",
    "apply_defaults",
    "build_batches",
    "parse_manifest",
]
