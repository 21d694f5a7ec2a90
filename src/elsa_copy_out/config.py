"""Application settings."""

import json
from enum import StrEnum
from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class FleetBackend(StrEnum):
    """Available execution fleets for copy jobs."""

    ECS = "ecs"
    LOCAL = "local"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Elsa Data Copy Out"
    api_prefix: str = ""
    service_id: str = "copy-out-local"
    service_public_url: str | None = None
    host: str = "0.0.0.0"
    port: int = 8080
    aws_region: str = "us-east-1"
    fleet_backend: FleetBackend = FleetBackend.ECS
    ecs_cluster: str | None = None
    ecs_task_definition: str | None = None
    ecs_container_name: str = "RcloneContainer"
    ecs_capacity_provider: str = "FARGATE_SPOT"
    ecs_platform_version: str = "1.4.0"
    ecs_subnets: Annotated[list[str], NoDecode] = Field(default_factory=list)
    ecs_security_groups: Annotated[list[str], NoDecode] = Field(default_factory=list)
    ecs_assign_public_ip: bool = False
    local_copy_command: Annotated[list[str], NoDecode] = Field(default_factory=list)
    default_max_items_per_batch: int = 1
    default_tolerated_failure_percentage: float = 0
    default_max_concurrency: int = 100
    job_poll_interval_seconds: float = 10.0
    job_timeout_seconds: float = 6 * 60 * 60.0
    dispatch_max_retries: int = 2
    shutdown_grace_seconds: float = 30.0
    run_events_mqtt_enabled: bool = False
    run_events_mqtt_host: str | None = None
    run_events_mqtt_port: int = 1883
    run_events_mqtt_username: str | None = None
    run_events_mqtt_password: str | None = None
    run_events_mqtt_topic_prefix: str = "elsa/copy-out"
    run_events_mqtt_qos: int = 0
    cloud_map_registration_enabled: bool = False
    cloud_map_service_id: str | None = None
    cloud_map_instance_id: str = "CopyOutService"

    @field_validator(
        "ecs_subnets",
        "ecs_security_groups",
        "local_copy_command",
        mode="before",
    )
    @classmethod
    def parse_csv_list(cls, value: object) -> object:
        """Support comma-separated env var values in addition to JSON arrays."""

        if not isinstance(value, str):
            return value
        stripped = value.strip()
        if stripped.startswith("["):
            return json.loads(stripped)
        return [item.strip() for item in stripped.split(",") if item.strip()]

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Ensure dispatch and integration settings are valid."""

        if self.default_max_items_per_batch < 1:
            raise ValueError("ELSA_COPY_OUT_DEFAULT_MAX_ITEMS_PER_BATCH must be >= 1.")
        if not 0 <= self.default_tolerated_failure_percentage <= 100:
            raise ValueError(
                "ELSA_COPY_OUT_DEFAULT_TOLERATED_FAILURE_PERCENTAGE must be between 0 and 100."
            )
        if self.default_max_concurrency < 1:
            raise ValueError("ELSA_COPY_OUT_DEFAULT_MAX_CONCURRENCY must be >= 1.")
        if self.job_poll_interval_seconds <= 0:
            raise ValueError("ELSA_COPY_OUT_JOB_POLL_INTERVAL_SECONDS must be > 0.")
        if self.job_timeout_seconds <= 0:
            raise ValueError("ELSA_COPY_OUT_JOB_TIMEOUT_SECONDS must be > 0.")
        if self.dispatch_max_retries < 0:
            raise ValueError("ELSA_COPY_OUT_DISPATCH_MAX_RETRIES must be >= 0.")
        if self.shutdown_grace_seconds < 0:
            raise ValueError("ELSA_COPY_OUT_SHUTDOWN_GRACE_SECONDS must be >= 0.")
        if self.run_events_mqtt_enabled and not self.run_events_mqtt_host:
            raise ValueError(
                "ELSA_COPY_OUT_RUN_EVENTS_MQTT_HOST is required when "
                "ELSA_COPY_OUT_RUN_EVENTS_MQTT_ENABLED=true."
            )
        if self.run_events_mqtt_port < 1:
            raise ValueError("ELSA_COPY_OUT_RUN_EVENTS_MQTT_PORT must be >= 1.")
        if self.run_events_mqtt_qos not in {0, 1, 2}:
            raise ValueError("ELSA_COPY_OUT_RUN_EVENTS_MQTT_QOS must be one of 0, 1, 2.")
        if self.cloud_map_registration_enabled and not self.cloud_map_service_id:
            raise ValueError(
                "ELSA_COPY_OUT_CLOUD_MAP_SERVICE_ID is required when "
                "ELSA_COPY_OUT_CLOUD_MAP_REGISTRATION_ENABLED=true."
            )
        return self

    model_config = SettingsConfigDict(env_prefix="ELSA_COPY_OUT_", extra="ignore")


__all__ = ["FleetBackend", "Settings"]
