"""Clock tamper detection and correction for Timeguard."""

import logging
import threading
import time
from concurrent.futures import Future
from datetime import datetime
from typing import Callable, Optional, Tuple

import pytz

from .baseline import BASELINE_KEYS, BaselineStore, BootTimeBaseline
from .outcome import (
    VERIFICATION_FAILED_MESSAGE,
    Outcome,
    PlatformUnsupportedError,
    VerificationResult,
)
from .platform.base import PlatformBase
from .time_server import ResponseParseError, TimeServerClient, TimeServerError

log = logging.getLogger(__name__)

DEFAULT_BOOT_TIME_TOLERANCE = 30.0  # seconds
DEFAULT_SERVER_TOLERANCE_MINUTES = 2

VerifiedTimeCallback = Callable[[bool, datetime, str], None]


class TamperDetector:
    """Detects system clock manipulation by comparing kernel boot time to a stored baseline.

    When the kernel boot time has moved away from the baseline, the local
    clock is checked against a remote time authority before a new baseline
    is accepted.
    """

    def __init__(
        self,
        platform: PlatformBase,
        store: BaselineStore,
        server: TimeServerClient,
        boot_time_tolerance: float = DEFAULT_BOOT_TIME_TOLERANCE,
        server_tolerance_minutes: int = DEFAULT_SERVER_TOLERANCE_MINUTES,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the tamper detector.

        Args:
            platform: Source of kernel boot time, uptime and time zone
            store: Persistent storage for the boot-time baseline
            server: Client for the remote time authority
            boot_time_tolerance: Largest boot-time shift still treated as untampered (seconds)
            server_tolerance_minutes: Largest server/local disagreement accepted (minutes)
            clock: Wall clock in seconds since epoch
        """
        self.platform = platform
        self.store = store
        self.server = server
        self._boot_time_tolerance = boot_time_tolerance
        self._server_tolerance_minutes = server_tolerance_minutes
        self._clock = clock

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock())

    def _resolve_zone(self) -> Tuple[str, pytz.BaseTzInfo]:
        """Return the platform's zone name and tzinfo, falling back to UTC."""
        timezone = self.platform.timezone()
        try:
            return timezone, pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError:
            log.warning(f"Unknown time zone {timezone!r}, using UTC")
            return "UTC", pytz.utc

    def is_clock_tampered(self) -> bool:
        """Return True if the kernel boot time no longer matches the baseline.

        A missing baseline counts as tampered so that the first check always
        reconciles with the server.
        """
        boot_time = self.platform.boot_time()
        baseline = self.store.get_baseline()
        if baseline is None:
            log.info("No boot time baseline stored")
            return True

        shift = abs(baseline.default_boot_time - boot_time)
        if shift > self._boot_time_tolerance:
            log.warning(f"Boot time moved by {shift:.0f} seconds since last verification")
            return True
        return False

    def reconcile_with_server(self) -> Tuple[bool, Outcome]:
        """Compare the local clock with the time authority.

        Returns:
            Tuple of (ok, outcome). ok is True when the server agrees with the
            local clock to within the server tolerance.
        """
        timezone, zone = self._resolve_zone()
        try:
            server_date = self.server.fetch_date(timezone)
        except TimeServerError as e:
            log.error(f"Time server unavailable: {e}")
            return False, Outcome.SERVER_ERROR
        except ResponseParseError as e:
            log.error(f"Could not parse time server response: {e}")
            return False, Outcome.PARSING_ERROR

        # Both sides in the zone the server was asked for
        server_date = zone.localize(server_date)
        local_now = datetime.fromtimestamp(self._clock(), zone)

        # Whole minutes, truncated toward zero
        minutes = int((server_date - local_now).total_seconds() / 60)
        if abs(minutes) <= self._server_tolerance_minutes:
            return True, Outcome.UNALTERED

        log.warning(f"Local clock differs from server by {minutes} minutes")
        return False, Outcome.CLOCK_STILL_INCONSISTENT

    def _correct(self) -> VerificationResult:
        """Apply drift correction and store a new baseline."""
        sample = self.platform.sample()
        now = self._clock()

        date = sample.boot_time + sample.uptime
        drift = date - now
        accurate = date - drift

        self.store.save_baseline(BootTimeBaseline(
            default_boot_time=sample.boot_time,
            actual_boot_time=sample.boot_time - drift,
        ))
        log.info(f"Clock verified against server, drift {drift:+.1f}s, baseline updated")
        return VerificationResult(True, datetime.fromtimestamp(accurate), Outcome.CORRECTED)

    def get_verified_time(self) -> VerificationResult:
        """Return a trustworthy current time and how it was obtained.

        Never raises for server, parsing or platform failures; those are
        reported through the outcome with the local time as timestamp.
        """
        try:
            if not self.is_clock_tampered():
                return VerificationResult(True, self._now(), Outcome.UNALTERED)

            ok, outcome = self.reconcile_with_server()
            if not ok:
                return VerificationResult(False, self._now(), outcome)

            return self._correct()
        except PlatformUnsupportedError as e:
            log.error(f"Time verification unavailable: {e}")
            return VerificationResult(False, self._now(), Outcome.PLATFORM_UNSUPPORTED)

    def verify_async(self, callback: Optional[VerifiedTimeCallback] = None) -> "Future[VerificationResult]":
        """Run get_verified_time on a worker thread.

        The returned future cannot be cancelled. If given, callback is called
        once with (success, timestamp, message) from the worker thread, also
        when verification raised.
        """
        future: Future = Future()
        future.set_running_or_notify_cancel()

        if callback is not None:
            def deliver(f: Future) -> None:
                if f.exception() is not None:
                    callback(False, self._now(), VERIFICATION_FAILED_MESSAGE)
                else:
                    callback(*f.result().as_tuple())

            future.add_done_callback(deliver)

        def run() -> None:
            try:
                future.set_result(self.get_verified_time())
            except Exception as e:
                log.error(f"Time verification failed: {e}")
                future.set_exception(e)

        threading.Thread(target=run, name="timeguard-verify", daemon=True).start()
        return future

    def up_time(self) -> datetime:
        """Return the current time as boot anchor plus kernel uptime.

        Uses the drift-adjusted boot time when a baseline exists, otherwise
        the kernel boot time. Does not run the tamper check.
        """
        sample = self.platform.sample()
        baseline = self.store.get_baseline()
        anchor = baseline.actual_boot_time if baseline else sample.boot_time
        return datetime.fromtimestamp(anchor + sample.uptime)

    def reset(self) -> None:
        """Forget the stored baseline."""
        for key in BASELINE_KEYS:
            self.store.clear(key)
        log.info("Boot time baseline reset")
