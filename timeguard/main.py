"""Main entry point for Timeguard."""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from .baseline import BASELINE_KEYS, JsonFileStore, MemoryStore
from .config import Config
from .mqtt_client import MqttClient
from .notifier import Notifier
from .outcome import Outcome, PlatformUnsupportedError, VerificationResult
from .platform import get_platform
from .tamper_detector import TamperDetector
from .time_server import TimeServerClient

log = logging.getLogger(__name__)

# Default config paths
SYSTEM_CONFIG = Path("/etc/timeguard/config.yaml")
USER_CONFIG = Path.home() / ".config/timeguard/config.yaml"


def build_detector(config: Config, dry_run: bool = False) -> TamperDetector:
    """Wire a TamperDetector from configuration."""
    store = MemoryStore() if dry_run else JsonFileStore(config.storage.state_file)
    server = TimeServerClient(config.server.url, timeout=config.server.timeout)
    return TamperDetector(
        platform=get_platform(),
        store=store,
        server=server,
        boot_time_tolerance=config.verification.boot_time_tolerance,
        server_tolerance_minutes=config.verification.server_tolerance_minutes,
    )


class TimeguardAgent:
    """Periodically verifies the system clock and reports the result."""

    def __init__(self, config: Config, detector: Optional[TamperDetector] = None):
        self.config = config
        self._stop_event = threading.Event()

        self.detector = detector or build_detector(config)
        self.notifier = Notifier(config.device.notify_user)
        self.mqtt_client: Optional[MqttClient] = None
        if config.mqtt.enabled:
            self.mqtt_client = MqttClient(config, self._on_command)

        # Checks run from the main loop and from MQTT callbacks
        self._check_lock = threading.Lock()
        self._last_result: Optional[VerificationResult] = None
        self._check_thread: Optional[threading.Thread] = None

    def _on_command(self, command: dict) -> None:
        """Handle incoming MQTT command."""
        action = command.get("action", "").lower()

        if action == "verify":
            # Keep the MQTT network thread free while the server is queried
            self._check_thread = threading.Thread(target=self.check, name="timeguard-check", daemon=True)
            self._check_thread.start()

        elif action == "clear_baseline":
            key = command.get("key")
            if key:
                if key not in BASELINE_KEYS:
                    log.warning(f"Unknown baseline key: {key}")
                    return
                self.detector.store.clear(key)
            else:
                self.detector.store.clear_all()
            if self.mqtt_client:
                self.mqtt_client.publish_event("baseline_cleared", {"key": key or "all"})

        else:
            log.warning(f"Unknown command: {action}")

    def check(self) -> VerificationResult:
        """Run one verification and report it."""
        with self._check_lock:
            result = self.detector.get_verified_time()
            previous = self._last_result
            self._last_result = result

        if result.success:
            log.info(f"Time verified ({result.outcome.value}): {result.timestamp}")
        else:
            log.warning(f"Time verification failed ({result.outcome.value}): {result.message}")

        changed = previous is None or previous.outcome != result.outcome

        if self.mqtt_client:
            self.mqtt_client.publish_verification(result)
            if changed and result.outcome == Outcome.CLOCK_STILL_INCONSISTENT:
                self.mqtt_client.publish_event("clock_tamper", {"message": result.message})

        if self.config.verification.notify and changed:
            if result.outcome.is_failure:
                self.notifier.send_verification_failure(result)
            elif previous is not None and previous.outcome.is_failure:
                self.notifier.send_verification_restored()

        return result

    def run(self) -> None:
        """Run the agent."""
        log.info("Starting Timeguard agent")
        log.info(f"Hostname: {self.config.device.hostname}")
        log.info(f"Time server: {self.config.server.url}")

        if self.mqtt_client:
            self.mqtt_client.connect()
            if not self.mqtt_client.wait_for_connection(timeout=30):
                log.error("Failed to connect to MQTT broker")
                sys.exit(1)
            self.mqtt_client.publish_ha_discovery()

        self._stop_event.clear()
        log.info("Timeguard agent running")

        interval = self.config.verification.poll_interval
        try:
            while not self._stop_event.is_set():
                self.check()
                self._stop_event.wait(interval)
        except KeyboardInterrupt:
            log.info("Interrupted by user")
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop the agent."""
        log.info("Stopping Timeguard agent")
        self._stop_event.set()
        if self.mqtt_client:
            self.mqtt_client.disconnect()
            self.mqtt_client = None
        self.detector.server.close()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_config(path: Optional[Path]) -> Config:
    """Load the given config, else the first default that exists, else defaults."""
    if path:
        return Config.load(path)
    for candidate in (SYSTEM_CONFIG, USER_CONFIG):
        if candidate.exists():
            return Config.load(candidate)
    log.info(f"No config file at {SYSTEM_CONFIG} or {USER_CONFIG}, using defaults")
    return Config()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Timeguard - System Clock Integrity Agent"
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help=f"Path to config file (default: {SYSTEM_CONFIG} or {USER_CONFIG})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Verify the clock once, print the result and exit",
    )
    mode.add_argument(
        "--uptime",
        action="store_true",
        help="Print the current time derived from kernel uptime and exit",
    )
    mode.add_argument(
        "--clear-baseline",
        action="store_true",
        help="Forget the stored boot time baseline and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Keep the baseline in memory instead of the state file",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        log.error(str(e))
        sys.exit(1)

    detector = build_detector(config, dry_run=args.dry_run)

    if args.once:
        result = detector.verify_async().result()
        status = "OK" if result.success else "FAILED"
        print(f"{status} {result.timestamp.isoformat(timespec='seconds')} "
              f"[{result.outcome.value}] {result.message}")
        sys.exit(0 if result.success else 1)

    if args.uptime:
        try:
            print(detector.up_time().isoformat(timespec="seconds"))
        except PlatformUnsupportedError as e:
            log.error(str(e))
            sys.exit(1)
        return

    if args.clear_baseline:
        detector.reset()
        return

    agent = TimeguardAgent(config, detector=detector)

    # Handle signals
    def signal_handler(sig, frame):
        log.info(f"Received signal {sig}")
        agent.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    agent.run()


if __name__ == "__main__":
    main()
