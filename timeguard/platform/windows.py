"""Windows platform implementation."""

import ctypes
import logging
import time

from ..outcome import PlatformUnsupportedError
from .base import PlatformBase

log = logging.getLogger(__name__)


class WindowsPlatform(PlatformBase):
    """Windows-specific implementations using Win32 API."""

    def _tick_count_ms(self) -> int:
        # GetTickCount64 returns milliseconds since system start
        kernel32 = ctypes.windll.kernel32
        kernel32.GetTickCount64.restype = ctypes.c_ulonglong
        return int(kernel32.GetTickCount64())

    def boot_time(self) -> float:
        """Derive boot time from the wall clock minus GetTickCount64."""
        try:
            return time.time() - self._tick_count_ms() / 1000.0
        except (AttributeError, OSError) as e:
            raise PlatformUnsupportedError(f"Could not get boot time: {e}") from e

    def uptime(self) -> float:
        try:
            return self._tick_count_ms() / 1000.0
        except (AttributeError, OSError) as e:
            log.debug(f"Failed to get uptime: {e}")
            return 0.0
