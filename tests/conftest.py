"""Pytest configuration and shared fixtures."""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import pytz

from timeguard.baseline import MemoryStore
from timeguard.outcome import PlatformUnsupportedError
from timeguard.platform.base import PlatformBase
from timeguard.tamper_detector import TamperDetector
from timeguard.time_server import SERVER_DATE_FORMAT, TimeServerClient

TIME_URL = "https://time.example.com/date"

# 2024-01-15 10:00:00 local time
NOW = datetime(2024, 1, 15, 10, 0, 0).timestamp()
BOOT_TIME = NOW - 3600.0
UPTIME = 3600.0
TZ = "Europe/Amsterdam"


def server_date(offset: timedelta = timedelta(0), tz: str = TZ) -> str:
    """Format NOW plus offset the way the time server does for zone tz."""
    dt = datetime.fromtimestamp(NOW, pytz.timezone(tz)) + offset
    return dt.strftime(SERVER_DATE_FORMAT)


class FakePlatform(PlatformBase):
    """Platform with settable kernel counters."""

    def __init__(self, boot_time: float = BOOT_TIME, uptime: float = UPTIME, tz: str = TZ):
        self.boot = boot_time
        self.up = uptime
        self.tz = tz
        self.supported = True

    def boot_time(self) -> float:
        if not self.supported:
            raise PlatformUnsupportedError("Could not get boot time")
        return self.boot

    def uptime(self) -> float:
        return self.up

    def timezone(self) -> str:
        return self.tz


@pytest.fixture
def platform():
    """A fake platform booted an hour before NOW."""
    return FakePlatform()


@pytest.fixture
def store():
    """An empty in-memory baseline store."""
    return MemoryStore()


@pytest.fixture
def server():
    """A time server client pointed at TIME_URL."""
    client = TimeServerClient(TIME_URL, timeout=5)
    yield client
    client.close()


@pytest.fixture
def detector(platform, store, server):
    """A TamperDetector with a fixed wall clock at NOW."""
    return TamperDetector(platform, store, server, clock=lambda: NOW)


@pytest.fixture
def temp_config_file():
    """Create a temporary config file."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        config = """
server:
  url: "https://time.example.com/date"
  timeout: 5

verification:
  boot_time_tolerance: 45
  server_tolerance_minutes: 3
  poll_interval: 60
  notify: false

storage:
  state_file: "/tmp/timeguard-test/baseline.json"

mqtt:
  broker: "localhost"
  port: 1883
  username: "test"
  password: "test"

device:
  hostname: "testhost"
  notify_user: "kid"
"""
        f.write(config)
        f.flush()
        yield Path(f.name)


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for tests that call external commands."""
    mock = MagicMock()
    mock.return_value.returncode = 0
    mock.return_value.stdout = ""
    mock.return_value.stderr = b""
    return mock
