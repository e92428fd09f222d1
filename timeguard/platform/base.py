"""Abstract base class for platform-specific implementations."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class KernelTimeSample:
    """Boot time and uptime read together at call time."""

    boot_time: float  # seconds since epoch
    uptime: float  # seconds since boot


class PlatformBase(ABC):
    """Abstract interface for platform-specific time sources."""

    @abstractmethod
    def boot_time(self) -> float:
        """Return the kernel boot timestamp in seconds since epoch.

        Raises PlatformUnsupportedError if the platform cannot report it.
        """
        pass

    @abstractmethod
    def uptime(self) -> float:
        """Return seconds elapsed since boot, or 0.0 if unavailable."""
        pass

    def timezone(self) -> str:
        """Return the IANA time zone identifier of the local clock.

        Honours the TZ environment variable; platforms may look further.
        """
        tz = os.environ.get("TZ", "").lstrip(":")
        return tz or "UTC"

    def sample(self) -> KernelTimeSample:
        """Read boot time and uptime together."""
        return KernelTimeSample(boot_time=self.boot_time(), uptime=self.uptime())
