"""MQTT client for Timeguard."""

import json
import logging
import threading
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from .config import Config
from .outcome import Outcome, VerificationResult

log = logging.getLogger(__name__)

# Home Assistant MQTT Discovery prefix
HA_DISCOVERY_PREFIX = "homeassistant"


class MqttClient:
    """MQTT client with LWT and command subscription."""

    def __init__(
        self,
        config: Config,
        on_command: Callable[[dict], None],
    ):
        self.config = config
        self.on_command = on_command
        self._client: Optional[mqtt.Client] = None
        self._connected = threading.Event()

    @property
    def topic_status(self) -> str:
        return f"{self.config.topic_prefix}/status"

    @property
    def topic_time(self) -> str:
        return f"{self.config.topic_prefix}/time"

    @property
    def topic_event(self) -> str:
        return f"{self.config.topic_prefix}/event"

    @property
    def topic_command(self) -> str:
        return f"{self.config.topic_prefix}/command"

    def connect(self) -> None:
        """Connect to MQTT broker."""
        # paho-mqtt 2.x uses CallbackAPIVersion
        try:
            self._client = mqtt.Client(
                mqtt.CallbackAPIVersion.VERSION1,
                client_id=f"timeguard-{self.config.device.hostname}",
                protocol=mqtt.MQTTv311,
            )
        except (AttributeError, TypeError):
            # paho-mqtt 1.x fallback
            self._client = mqtt.Client(
                client_id=f"timeguard-{self.config.device.hostname}",
                protocol=mqtt.MQTTv311,
            )

        if self.config.mqtt.username:
            self._client.username_pw_set(
                self.config.mqtt.username,
                self.config.mqtt.password,
            )

        # Set Last Will Testament for offline detection
        self._client.will_set(
            self.topic_status,
            payload=json.dumps({"state": "offline"}),
            qos=1,
            retain=True,
        )

        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        log.info(f"Connecting to {self.config.mqtt.broker}:{self.config.mqtt.port}")
        self._client.connect(
            self.config.mqtt.broker,
            self.config.mqtt.port,
            keepalive=60,
        )
        self._client.loop_start()

    def disconnect(self) -> None:
        """Disconnect from MQTT broker."""
        if self._client:
            self.publish_status("offline")
            self._client.loop_stop()
            self._client.disconnect()
            log.info("Disconnected from MQTT broker")

    def wait_for_connection(self, timeout: float = 10.0) -> bool:
        """Wait for connection to be established."""
        return self._connected.wait(timeout)

    def publish_status(self, state: str) -> None:
        """Publish device status."""
        if self._client:
            payload = json.dumps({"state": state})
            self._client.publish(self.topic_status, payload, qos=1, retain=True)
            log.debug(f"Published status: {state}")

    def publish_verification(self, result: VerificationResult) -> None:
        """Publish the latest verification result (retained)."""
        if self._client:
            data = result.to_dict()
            data["tampered"] = result.outcome == Outcome.CLOCK_STILL_INCONSISTENT
            self._client.publish(self.topic_time, json.dumps(data), qos=1, retain=True)
            log.debug(f"Published verification: {result.outcome.value}")

    def publish_event(self, event: str, data: Optional[dict] = None) -> None:
        """Publish a one-off event."""
        if self._client:
            payload = {"event": event}
            if data:
                payload.update(data)
            self._client.publish(self.topic_event, json.dumps(payload), qos=1, retain=False)
            log.debug(f"Published event: {event}")

    def publish_ha_discovery(self) -> None:
        """Publish Home Assistant MQTT discovery messages."""
        if not self._client:
            return

        hostname = self.config.device.hostname
        device_info = {
            "identifiers": [f"timeguard_{hostname}"],
            "name": f"Timeguard {hostname}",
            "manufacturer": "Timeguard",
            "model": "Clock Integrity Agent",
        }

        self._publish_discovery("binary_sensor", f"{hostname}_online", {
            "name": f"{hostname} Online",
            "unique_id": f"timeguard_{hostname}_online",
            "device": device_info,
            "state_topic": self.topic_status,
            "value_template": "{{ value_json.state }}",
            "payload_on": "online",
            "payload_off": "offline",
            "device_class": "connectivity",
        })

        self._publish_discovery("binary_sensor", f"{hostname}_clock_tampered", {
            "name": f"{hostname} Clock Tampered",
            "unique_id": f"timeguard_{hostname}_clock_tampered",
            "device": device_info,
            "state_topic": self.topic_time,
            "value_template": "{{ 'ON' if value_json.tampered else 'OFF' }}",
            "device_class": "problem",
        })

        self._publish_discovery("sensor", f"{hostname}_verified_time", {
            "name": f"{hostname} Verified Time",
            "unique_id": f"timeguard_{hostname}_verified_time",
            "device": device_info,
            "state_topic": self.topic_time,
            "value_template": "{{ value_json.timestamp }}",
            "icon": "mdi:clock-check-outline",
        })

        self._publish_discovery("sensor", f"{hostname}_outcome", {
            "name": f"{hostname} Verification Outcome",
            "unique_id": f"timeguard_{hostname}_outcome",
            "device": device_info,
            "state_topic": self.topic_time,
            "value_template": "{{ value_json.outcome }}",
            "icon": "mdi:shield-check-outline",
        })

        self._publish_discovery("button", f"{hostname}_verify", {
            "name": f"{hostname} Verify Now",
            "unique_id": f"timeguard_{hostname}_verify",
            "device": device_info,
            "command_topic": self.topic_command,
            "payload_press": json.dumps({"action": "verify"}),
            "icon": "mdi:refresh",
        })

        log.info("Published HA discovery")

    def _publish_discovery(self, component: str, object_id: str, config: dict) -> None:
        """Publish a single HA discovery message."""
        topic = f"{HA_DISCOVERY_PREFIX}/{component}/timeguard/{object_id}/config"
        self._client.publish(topic, json.dumps(config), qos=1, retain=True)

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata,
        flags,
        rc: int,
    ) -> None:
        """Handle connection established."""
        if rc == 0:
            log.info("Connected to MQTT broker")
            self._connected.set()

            client.subscribe(self.topic_command, qos=1)
            log.info(f"Subscribed to {self.topic_command}")

            self.publish_status("online")
        else:
            log.error(f"Connection failed with code {rc}")

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata,
        rc: int,
    ) -> None:
        """Handle disconnection."""
        self._connected.clear()
        if rc != 0:
            log.warning(f"Unexpected disconnect (rc={rc}), will reconnect")
        else:
            log.info("Disconnected cleanly")

    def _on_message(
        self,
        client: mqtt.Client,
        userdata,
        msg: mqtt.MQTTMessage,
    ) -> None:
        """Handle incoming message."""
        try:
            payload = json.loads(msg.payload.decode())

            if msg.topic == self.topic_command:
                log.info(f"Received command: {payload}")
                self.on_command(payload)
            else:
                log.warning(f"Unknown topic: {msg.topic}")
        except json.JSONDecodeError as e:
            log.error(f"Invalid JSON in message: {e}")
        except Exception as e:
            log.error(f"Error handling message: {e}")
