"""Linux platform implementation."""

import logging
import os
import subprocess
from pathlib import Path

from ..outcome import PlatformUnsupportedError
from .base import PlatformBase

log = logging.getLogger(__name__)

PROC_STAT = Path("/proc/stat")
PROC_UPTIME = Path("/proc/uptime")
ETC_TIMEZONE = Path("/etc/timezone")
ETC_LOCALTIME = Path("/etc/localtime")
ZONEINFO_MARKER = "zoneinfo/"


class LinuxPlatform(PlatformBase):
    """Linux-specific implementations using procfs and systemd tools."""

    def boot_time(self) -> float:
        """Read btime from /proc/stat.

        The kernel derives btime from the wall clock minus uptime, so a manual
        clock change shifts it.
        """
        try:
            with open(PROC_STAT) as f:
                for line in f:
                    if line.startswith("btime "):
                        return float(line.split()[1])
        except (OSError, ValueError, IndexError) as e:
            raise PlatformUnsupportedError(f"Could not get boot time: {e}") from e
        raise PlatformUnsupportedError(f"Could not get boot time: no btime in {PROC_STAT}")

    def uptime(self) -> float:
        """Read uptime from /proc/uptime."""
        try:
            with open(PROC_UPTIME) as f:
                return float(f.read().split()[0])
        except (OSError, ValueError, IndexError) as e:
            log.debug(f"Failed to read uptime: {e}")
            return 0.0

    def timezone(self) -> str:
        """Resolve the IANA zone via TZ, timedatectl, /etc/timezone or /etc/localtime."""
        tz = os.environ.get("TZ", "").lstrip(":")
        if tz:
            return tz

        try:
            result = subprocess.run(
                ["timedatectl", "show", "-p", "Timezone", "--value"],
                capture_output=True,
                text=True,
                timeout=5,
            )
            if result.returncode == 0 and result.stdout.strip():
                return result.stdout.strip()
        except (subprocess.SubprocessError, FileNotFoundError):
            pass

        try:
            tz = ETC_TIMEZONE.read_text().strip()
            if tz:
                return tz
        except OSError:
            pass

        try:
            target = os.path.realpath(ETC_LOCALTIME)
            if ZONEINFO_MARKER in target:
                return target.split(ZONEINFO_MARKER, 1)[1]
        except OSError:
            pass

        log.debug("Could not determine time zone, using UTC")
        return "UTC"
