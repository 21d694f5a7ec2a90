"""Infrastructure layer public API."""

from elsa_copy_out.infrastructure.events import (
    MqttCopyOutEventPublisher,
    NoopCopyOutEventPublisher,
)
from elsa_copy_out.infrastructure.fleet import EcsExecutionFleet, LocalProcessExecutionFleet
from elsa_copy_out.infrastructure.object_store import S3ManifestObjectStore
from elsa_copy_out.infrastructure.registration import (
    CloudMapRegistrar,
    CloudMapRegistrationError,
)
from elsa_copy_out.infrastructure.repositories import InMemoryCopyOutRunRepository

__all__ = [
    "CloudMapRegistrar",
    "CloudMapRegistrationError",
    "EcsExecutionFleet",
    "InMemoryCopyOutRunRepository",
    "LocalProcessExecutionFleet",
    "MqttCopyOutEventPublisher",
    "NoopCopyOutEventPublisher",
    "S3ManifestObjectStore",
]
