"""Service discovery registration."""

from elsa_copy_out.infrastructure.registration.cloud_map_registrar import (
    ENDPOINT_ATTRIBUTE,
    CloudMapRegistrar,
    CloudMapRegistrationError,
)

__all__ = ["CloudMapRegistrar", "CloudMapRegistrationError", "ENDPOINT_ATTRIBUTE"]
