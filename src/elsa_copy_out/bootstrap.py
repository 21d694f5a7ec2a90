"""Application bootstrap/wiring."""

import logging

from elsa_copy_out.application.services import BatchDispatcher, CopyOutService, ManifestReader
from elsa_copy_out.config import FleetBackend, Settings
from elsa_copy_out.domain.ports import CopyOutEventPublisher, ExecutionFleet
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

logger = logging.getLogger(__name__)


def _build_execution_fleet(settings: Settings) -> ExecutionFleet:
    if settings.fleet_backend == FleetBackend.LOCAL:
        if not settings.local_copy_command:
            raise ValueError(
                "ELSA_COPY_OUT_LOCAL_COPY_COMMAND is required when "
                "ELSA_COPY_OUT_FLEET_BACKEND=local."
            )
        return LocalProcessExecutionFleet(command=settings.local_copy_command)

    if not settings.ecs_cluster or not settings.ecs_task_definition:
        raise ValueError(
            "ELSA_COPY_OUT_ECS_CLUSTER and ELSA_COPY_OUT_ECS_TASK_DEFINITION are required when "
            "ELSA_COPY_OUT_FLEET_BACKEND=ecs."
        )
    return EcsExecutionFleet(
        cluster=settings.ecs_cluster,
        task_definition=settings.ecs_task_definition,
        container_name=settings.ecs_container_name,
        subnets=settings.ecs_subnets,
        security_groups=settings.ecs_security_groups,
        assign_public_ip=settings.ecs_assign_public_ip,
        capacity_provider=settings.ecs_capacity_provider,
        platform_version=settings.ecs_platform_version,
        region=settings.aws_region,
    )


def _build_event_publisher(settings: Settings) -> CopyOutEventPublisher:
    if settings.run_events_mqtt_enabled:
        if settings.run_events_mqtt_host is None:
            raise ValueError(
                "ELSA_COPY_OUT_RUN_EVENTS_MQTT_HOST is required when "
                "ELSA_COPY_OUT_RUN_EVENTS_MQTT_ENABLED=true."
            )
        return MqttCopyOutEventPublisher(
            service_id=settings.service_id,
            broker_host=settings.run_events_mqtt_host,
            broker_port=settings.run_events_mqtt_port,
            topic_prefix=settings.run_events_mqtt_topic_prefix,
            qos=settings.run_events_mqtt_qos,
            username=settings.run_events_mqtt_username,
            password=settings.run_events_mqtt_password,
            service_public_url=settings.service_public_url,
        )
    return NoopCopyOutEventPublisher()


def _service_endpoint(settings: Settings) -> str | None:
    """Build externally reachable API endpoint from settings."""

    if settings.service_public_url is None:
        return None

    base_url = settings.service_public_url.strip().rstrip("/")
    if not base_url:
        return None

    api_prefix = settings.api_prefix.strip()
    if not api_prefix:
        return base_url

    normalized_prefix = api_prefix if api_prefix.startswith("/") else f"/{api_prefix}"
    normalized_prefix = normalized_prefix.rstrip("/")
    return f"{base_url}{normalized_prefix}"


def register_service(settings: Settings) -> bool:
    """Register the service in Cloud Map when enabled; never fatal."""

    if not settings.cloud_map_registration_enabled:
        return False

    endpoint = _service_endpoint(settings)
    if endpoint is None or settings.cloud_map_service_id is None:
        logger.warning(
            "Cloud Map registration enabled but ELSA_COPY_OUT_SERVICE_PUBLIC_URL is missing. "
            "Skipping registration."
        )
        return False

    try:
        registrar = CloudMapRegistrar(
            service_id=settings.cloud_map_service_id,
            instance_id=settings.cloud_map_instance_id,
            region=settings.aws_region,
        )
        registrar.register(endpoint)
    except CloudMapRegistrationError as exc:
        logger.warning(
            "Failed to register copy out service '%s' in Cloud Map service '%s': %s. "
            "Continuing without registration.",
            settings.service_id,
            settings.cloud_map_service_id,
            exc,
        )
        return False

    logger.info(
        "Registered copy out service '%s' in Cloud Map service '%s'.",
        settings.service_id,
        settings.cloud_map_service_id,
    )
    return True


def build_copy_out_service(settings: Settings) -> CopyOutService:
    """Compose service graph."""

    dispatcher = BatchDispatcher(
        fleet=_build_execution_fleet(settings),
        poll_interval_seconds=settings.job_poll_interval_seconds,
        job_timeout_seconds=settings.job_timeout_seconds,
        max_retries=settings.dispatch_max_retries,
    )
    service = CopyOutService(
        service_id=settings.service_id,
        manifest_reader=ManifestReader(S3ManifestObjectStore(region=settings.aws_region)),
        dispatcher=dispatcher,
        repository=InMemoryCopyOutRunRepository(),
        event_publisher=_build_event_publisher(settings),
        defaults={
            "maxItemsPerBatch": settings.default_max_items_per_batch,
            "toleratedFailurePercentage": settings.default_tolerated_failure_percentage,
            "maxConcurrency": settings.default_max_concurrency,
        },
        shutdown_grace_seconds=settings.shutdown_grace_seconds,
    )
    register_service(settings)
    return service


__all__ = ["build_copy_out_service", "register_service"]
