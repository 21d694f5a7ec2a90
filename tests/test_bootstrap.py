from __future__ import annotations

import pytest
from pydantic import ValidationError

from elsa_copy_out.bootstrap import build_copy_out_service, register_service
from elsa_copy_out.config import FleetBackend, Settings
from elsa_copy_out.infrastructure.events import NoopCopyOutEventPublisher
from elsa_copy_out.infrastructure.fleet import EcsExecutionFleet, LocalProcessExecutionFleet
from elsa_copy_out.infrastructure.registration import (
    CloudMapRegistrar,
    CloudMapRegistrationError,
)
from elsa_copy_out.infrastructure.repositories import InMemoryCopyOutRunRepository


def _ecs_settings(**kwargs: object) -> Settings:
    return Settings(
        ecs_cluster="copy-out",
        ecs_task_definition="copy-out-rclone:3",
        **kwargs,
    )


def test_settings_defaults_load_without_environment() -> None:
    settings = Settings()

    assert settings.fleet_backend is FleetBackend.ECS
    assert settings.default_max_items_per_batch == 1
    assert settings.default_tolerated_failure_percentage == 0
    assert settings.default_max_concurrency == 100
    assert settings.dispatch_max_retries == 2


def test_settings_parse_comma_separated_lists(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ELSA_COPY_OUT_ECS_SUBNETS", "subnet-1, subnet-2")
    monkeypatch.setenv("ELSA_COPY_OUT_LOCAL_COPY_COMMAND", '["rclone", "copy"]')

    settings = Settings()

    assert settings.ecs_subnets == ["subnet-1", "subnet-2"]
    assert settings.local_copy_command == ["rclone", "copy"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"default_max_items_per_batch": 0},
        {"default_tolerated_failure_percentage": 150},
        {"default_max_concurrency": 0},
        {"job_poll_interval_seconds": 0},
        {"job_timeout_seconds": -1},
        {"dispatch_max_retries": -1},
        {"run_events_mqtt_enabled": True},
        {"run_events_mqtt_qos": 3},
        {"cloud_map_registration_enabled": True},
    ],
)
def test_settings_reject_invalid_values(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_build_copy_out_service_uses_ecs_fleet_by_default() -> None:
    service = build_copy_out_service(
        _ecs_settings(ecs_subnets=["subnet-1"], job_poll_interval_seconds=5, dispatch_max_retries=1)
    )

    assert isinstance(service._dispatcher._fleet, EcsExecutionFleet)
    assert service._dispatcher.max_retries == 1
    assert isinstance(service._repository, InMemoryCopyOutRunRepository)
    assert isinstance(service._event_publisher, NoopCopyOutEventPublisher)


def test_build_copy_out_service_requires_ecs_cluster_and_task_definition() -> None:
    with pytest.raises(ValueError, match="ECS_CLUSTER"):
        build_copy_out_service(Settings())


def test_build_copy_out_service_uses_local_fleet_when_configured() -> None:
    settings = Settings(fleet_backend=FleetBackend.LOCAL, local_copy_command=["rclone", "copy"])

    service = build_copy_out_service(settings)

    assert isinstance(service._dispatcher._fleet, LocalProcessExecutionFleet)


def test_build_copy_out_service_requires_local_command() -> None:
    with pytest.raises(ValueError, match="LOCAL_COPY_COMMAND"):
        build_copy_out_service(Settings(fleet_backend=FleetBackend.LOCAL))


def test_build_copy_out_service_applies_configured_defaults() -> None:
    service = build_copy_out_service(
        _ecs_settings(default_max_items_per_batch=10, default_max_concurrency=4)
    )

    request = service.build_request(
        {
            "sourceFilesCsvBucket": "manifests",
            "sourceFilesCsvKey": "files.csv",
            "destinationBucket": "dest",
        }
    )

    assert request.max_items_per_batch == 10
    assert request.max_concurrency == 4
    assert request.tolerated_failure_percentage == 0


def test_register_service_registers_public_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    endpoints: list[str] = []

    def _register_ok(
        self: CloudMapRegistrar,
        endpoint: str,
        attributes: object = None,
    ) -> str:
        endpoints.append(endpoint)
        return "op-1"

    monkeypatch.setattr(CloudMapRegistrar, "register", _register_ok)

    registered = register_service(
        _ecs_settings(
            cloud_map_registration_enabled=True,
            cloud_map_service_id="srv-abc",
            service_public_url="https://copy-out.example/",
            api_prefix="api",
        )
    )

    assert registered is True
    assert endpoints == ["https://copy-out.example/api"]


def test_register_service_continues_when_registration_fails(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def _register_fail(
        self: CloudMapRegistrar,
        endpoint: str,
        attributes: object = None,
    ) -> str:
        raise CloudMapRegistrationError("registration failed")

    monkeypatch.setattr(CloudMapRegistrar, "register", _register_fail)

    settings = _ecs_settings(
        cloud_map_registration_enabled=True,
        cloud_map_service_id="srv-abc",
        service_public_url="https://copy-out.example",
    )

    assert register_service(settings) is False
    build_copy_out_service(settings)


def test_register_service_skips_without_public_url() -> None:
    settings = _ecs_settings(cloud_map_registration_enabled=True, cloud_map_service_id="srv-abc")

    assert register_service(settings) is False


def test_register_service_is_disabled_by_default() -> None:
    assert register_service(_ecs_settings()) is False
