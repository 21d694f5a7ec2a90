"""AWS Cloud Map registration so clients can discover the copy out service."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, cast

import boto3
from botocore.exceptions import BotoCoreError, ClientError

ENDPOINT_ATTRIBUTE = "copyOutEndpoint"


class ServiceDiscoveryClient(Protocol):
    """Subset of servicediscovery client operations used for registration."""

    def register_instance(
        self,
        *,
        ServiceId: str,
        InstanceId: str,
        Attributes: dict[str, str],
    ) -> dict[str, Any]:
        """Register or update a service instance."""


class CloudMapRegistrationError(RuntimeError):
    """Raised when Cloud Map registration fails."""


class CloudMapRegistrar:
    """Register this service as a non-IP Cloud Map instance."""

    def __init__(
        self,
        service_id: str,
        instance_id: str,
        region: str = "us-east-1",
        client_factory: Callable[[str], ServiceDiscoveryClient] | None = None,
    ) -> None:
        if not service_id.strip():
            raise CloudMapRegistrationError("Cloud Map service id cannot be empty.")
        self._service_id = service_id
        self._instance_id = instance_id
        self._region = region
        self._client_factory = client_factory or self._build_default_client

    def register(self, endpoint: str, attributes: Mapping[str, str] | None = None) -> str:
        """Register `endpoint` and return the Cloud Map operation id."""

        instance_attributes = {ENDPOINT_ATTRIBUTE: endpoint, **(attributes or {})}
        try:
            response = self._client_factory(self._region).register_instance(
                ServiceId=self._service_id,
                InstanceId=self._instance_id,
                Attributes=instance_attributes,
            )
        except (ClientError, BotoCoreError) as exc:
            raise CloudMapRegistrationError(
                f"servicediscovery:RegisterInstance failed for service "
                f"'{self._service_id}': {exc}"
            ) from exc
        return str(response.get("OperationId", ""))

    def _build_default_client(self, region: str) -> ServiceDiscoveryClient:
        return cast(ServiceDiscoveryClient, boto3.client("servicediscovery", region_name=region))


__all__ = ["CloudMapRegistrar", "CloudMapRegistrationError", "ENDPOINT_ATTRIBUTE"]
