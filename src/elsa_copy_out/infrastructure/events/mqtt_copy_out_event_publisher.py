"""MQTT copy out run event publisher."""

from __future__ import annotations

import asyncio
import json
import time
from datetime import UTC, datetime
from typing import Any

import paho.mqtt.client as mqtt

from elsa_copy_out.domain.entities import CopyOutRun
from elsa_copy_out.domain.ports import CopyOutEventPublisher


class MqttCopyOutEventPublisher(CopyOutEventPublisher):
    """Publish run state events to MQTT topics."""

    def __init__(
        self,
        service_id: str,
        broker_host: str,
        broker_port: int = 1883,
        topic_prefix: str = "elsa/copy-out",
        qos: int = 0,
        username: str | None = None,
        password: str | None = None,
        service_public_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        if not broker_host.strip():
            raise ValueError("broker_host cannot be empty.")
        if qos not in {0, 1, 2}:
            raise ValueError("qos must be one of 0, 1, 2.")

        self._service_id = service_id
        self._service_public_url = service_public_url
        self._topic_prefix = topic_prefix.strip().strip("/")
        self._qos = qos

        if client is None:
            client = mqtt.Client(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
                client_id=f"elsa-copy-out-{service_id}",
            )
            if username is not None:
                client.username_pw_set(username=username, password=password)
            self._connect_with_retry(
                client=client,
                broker_host=broker_host,
                broker_port=broker_port,
            )
            client.loop_start()
        self._client = client

    async def publish_run(self, run: CopyOutRun) -> None:
        topic = f"{self._topic_prefix}/{self._service_id}/runs/{run.run_id}/state"
        await self._publish(topic, self._run_payload(run))

    async def _publish(self, topic: str, payload: dict[str, object]) -> None:
        message = json.dumps(payload, separators=(",", ":"))
        await asyncio.to_thread(self._client.publish, topic, message, self._qos)

    def _run_payload(self, run: CopyOutRun) -> dict[str, object]:
        request = run.request
        payload: dict[str, object] = {
            "eventType": "state",
            "timestamp": self._timestamp(),
            "serviceId": self._service_id,
            "runId": run.run_id,
            "state": run.state.value,
            "sourceFilesCsvBucket": request.source_files_csv_bucket,
            "sourceFilesCsvKey": request.source_files_csv_key,
            "destinationBucket": request.destination_bucket,
            "totalItems": run.total_items,
            "totalBatches": run.total_batches,
            "completedBatches": len(run.outcomes),
        }
        if run.result is not None:
            payload["result"] = run.result.model_dump(mode="json", by_alias=True)
        if self._service_public_url is not None:
            payload["serviceUrl"] = self._service_public_url
        return payload

    def _timestamp(self) -> str:
        return datetime.now(tz=UTC).isoformat()

    def _connect_with_retry(
        self,
        client: Any,
        broker_host: str,
        broker_port: int,
        max_attempts: int = 20,
    ) -> None:
        """Connect to MQTT broker with bounded retry/backoff."""

        delay_seconds = 0.5
        last_error: Exception | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                client.connect(host=broker_host, port=broker_port, keepalive=60)
                return
            except OSError as exc:
                last_error = exc
                if attempt == max_attempts:
                    break
                time.sleep(delay_seconds)
                delay_seconds = min(3.0, delay_seconds * 1.5)

        raise RuntimeError(
            f"Failed to connect to MQTT broker {broker_host}:{broker_port} "
            f"after {max_attempts} attempts."
        ) from last_error


__all__ = ["MqttCopyOutEventPublisher"]
