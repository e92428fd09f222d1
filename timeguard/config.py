"""Configuration handling for Timeguard."""

import socket
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_SERVER_URL = "https://santoshm.com.np/englishdate/index.php"


@dataclass
class ServerConfig:
    url: str = DEFAULT_SERVER_URL
    timeout: float = 10.0  # seconds, enforced by the HTTP transport


@dataclass
class VerificationConfig:
    boot_time_tolerance: float = 30.0  # seconds
    server_tolerance_minutes: int = 2
    poll_interval: int = 300  # seconds between agent checks
    notify: bool = True  # Show a desktop notification on failure


@dataclass
class StorageConfig:
    state_file: Path = Path("/var/lib/timeguard/baseline.json")


@dataclass
class MqttConfig:
    enabled: bool = True
    broker: str = "homeassistant.local"
    port: int = 1883
    username: str | None = None
    password: str | None = None


@dataclass
class DeviceConfig:
    hostname: str = field(default_factory=socket.gethostname)
    notify_user: str | None = None  # None = notify the agent's own session


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    verification: VerificationConfig = field(default_factory=VerificationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    mqtt: MqttConfig = field(default_factory=MqttConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load configuration from YAML file."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        config = cls()

        # Server config
        if "server" in data:
            server_data = data["server"]
            config.server = ServerConfig(
                url=server_data.get("url", config.server.url),
                timeout=float(server_data.get("timeout", config.server.timeout)),
            )

        # Verification config
        if "verification" in data:
            verify_data = data["verification"]
            config.verification = VerificationConfig(
                boot_time_tolerance=float(verify_data.get(
                    "boot_time_tolerance", config.verification.boot_time_tolerance
                )),
                server_tolerance_minutes=int(verify_data.get(
                    "server_tolerance_minutes", config.verification.server_tolerance_minutes
                )),
                poll_interval=int(verify_data.get(
                    "poll_interval", config.verification.poll_interval
                )),
                notify=verify_data.get("notify", config.verification.notify),
            )

        # Storage config
        if "storage" in data:
            storage_data = data["storage"]
            config.storage = StorageConfig(
                state_file=Path(storage_data.get("state_file", config.storage.state_file)),
            )

        # MQTT config
        if "mqtt" in data:
            mqtt_data = data["mqtt"]
            config.mqtt = MqttConfig(
                enabled=mqtt_data.get("enabled", config.mqtt.enabled),
                broker=mqtt_data.get("broker", config.mqtt.broker),
                port=mqtt_data.get("port", config.mqtt.port),
                username=mqtt_data.get("username"),
                password=mqtt_data.get("password"),
            )

        # Device config
        if "device" in data:
            device_data = data["device"]
            config.device = DeviceConfig(
                hostname=device_data.get("hostname", socket.gethostname()),
                notify_user=device_data.get("notify_user"),
            )

        return config

    @property
    def topic_prefix(self) -> str:
        """Return the MQTT topic prefix for this device."""
        return f"timeguard/{self.device.hostname}"
