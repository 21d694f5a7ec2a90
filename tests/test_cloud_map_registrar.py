from __future__ import annotations

from typing import Any

import pytest
from botocore.exceptions import ClientError

from elsa_copy_out.infrastructure.registration import (
    CloudMapRegistrar,
    CloudMapRegistrationError,
)


class FakeServiceDiscoveryClient:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def register_instance(
        self,
        *,
        ServiceId: str,
        InstanceId: str,
        Attributes: dict[str, str],
    ) -> dict[str, Any]:
        self.calls.append(
            {"ServiceId": ServiceId, "InstanceId": InstanceId, "Attributes": Attributes}
        )
        if self.error is not None:
            raise self.error
        return {"OperationId": "op-123"}


def test_register_publishes_endpoint_attribute() -> None:
    client = FakeServiceDiscoveryClient()
    registrar = CloudMapRegistrar(
        service_id="srv-abc",
        instance_id="CopyOutService",
        region="ap-southeast-2",
        client_factory=lambda _: client,
    )

    operation_id = registrar.register("https://copy-out.example/api", {"version": "0.1.0"})

    assert operation_id == "op-123"
    assert client.calls == [
        {
            "ServiceId": "srv-abc",
            "InstanceId": "CopyOutService",
            "Attributes": {
                "copyOutEndpoint": "https://copy-out.example/api",
                "version": "0.1.0",
            },
        }
    ]


def test_register_wraps_client_errors() -> None:
    client = FakeServiceDiscoveryClient(
        error=ClientError({"Error": {"Code": "ServiceNotFound"}}, "RegisterInstance")
    )
    registrar = CloudMapRegistrar(
        service_id="srv-abc",
        instance_id="CopyOutService",
        client_factory=lambda _: client,
    )

    with pytest.raises(CloudMapRegistrationError):
        registrar.register("https://copy-out.example")


def test_blank_service_id_is_rejected() -> None:
    with pytest.raises(CloudMapRegistrationError):
        CloudMapRegistrar(service_id=" ", instance_id="CopyOutService")
