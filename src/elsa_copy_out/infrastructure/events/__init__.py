"""Copy out run event publisher implementations."""

from elsa_copy_out.infrastructure.events.mqtt_copy_out_event_publisher import (
    MqttCopyOutEventPublisher,
)
from elsa_copy_out.infrastructure.events.noop_copy_out_event_publisher import (
    NoopCopyOutEventPublisher,
)

__all__ = ["MqttCopyOutEventPublisher", "NoopCopyOutEventPublisher"]
