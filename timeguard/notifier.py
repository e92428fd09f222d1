"""Desktop notification helper for Timeguard."""

import logging
import os
import subprocess
from typing import Optional

from .outcome import Outcome, VerificationResult

log = logging.getLogger(__name__)


class Notifier:
    """Sends desktop notifications, optionally into another user's session."""

    # Notification urgency levels for notify-send
    URGENCY_LOW = "low"
    URGENCY_NORMAL = "normal"
    URGENCY_CRITICAL = "critical"

    def __init__(self, username: Optional[str] = None):
        self.username = username

    @staticmethod
    def _get_user_uid(username: str) -> Optional[str]:
        try:
            result = subprocess.run(
                ["id", "-u", username],
                capture_output=True,
                text=True,
                timeout=5,
            )
            return result.stdout.strip() or None
        except Exception as e:
            log.debug(f"Could not get uid for {username}: {e}")
            return None

    def _build_command(
        self,
        title: str,
        message: str,
        urgency: str,
        icon: str,
        timeout_ms: int,
    ) -> tuple[list[str], dict]:
        env = os.environ.copy()
        cmd = [
            "notify-send",
            "--urgency", urgency,
            "--icon", icon,
            "--expire-time", str(timeout_ms),
            "--app-name", "Timeguard",
            title,
            message,
        ]

        if self.username:
            # Run notify-send as the target user against their session bus
            env.setdefault("DISPLAY", ":0")
            uid = self._get_user_uid(self.username)
            if uid:
                env["DBUS_SESSION_BUS_ADDRESS"] = f"unix:path=/run/user/{uid}/bus"
            cmd = ["sudo", "-u", self.username] + cmd

        return cmd, env

    def send_notification(
        self,
        title: str,
        message: str,
        urgency: str = URGENCY_NORMAL,
        icon: str = "dialog-warning",
        timeout_ms: int = 10000,
    ) -> bool:
        """Send a desktop notification.

        Args:
            title: Notification title
            message: Notification body
            urgency: low, normal, or critical
            icon: Icon name or path
            timeout_ms: Time to show notification (0 = until dismissed)

        Returns:
            True if notification was sent successfully
        """
        cmd, env = self._build_command(title, message, urgency, icon, timeout_ms)

        try:
            result = subprocess.run(
                cmd,
                env=env,
                capture_output=True,
                timeout=10,
            )

            if result.returncode == 0:
                log.debug(f"Sent notification: {title}")
                return True
            else:
                log.warning(f"notify-send failed: {result.stderr.decode()}")
                return False

        except subprocess.TimeoutExpired:
            log.warning("Notification timed out")
            return False
        except Exception as e:
            log.error(f"Failed to send notification: {e}")
            return False

    def send_verification_failure(self, result: VerificationResult) -> bool:
        """Tell the user why the clock could not be verified and what to do."""
        if result.outcome == Outcome.CLOCK_STILL_INCONSISTENT:
            title = "System Clock Changed"
            urgency = self.URGENCY_CRITICAL
            icon = "dialog-error"
            timeout = 0  # Stay until dismissed
        elif result.outcome == Outcome.PLATFORM_UNSUPPORTED:
            title = "Time Verification Unavailable"
            urgency = self.URGENCY_CRITICAL
            icon = "dialog-error"
            timeout = 0
        else:
            title = "Could Not Verify Time"
            urgency = self.URGENCY_NORMAL
            icon = "dialog-warning"
            timeout = 10000

        return self.send_notification(
            title=title,
            message=result.message,
            urgency=urgency,
            icon=icon,
            timeout_ms=timeout,
        )

    def send_verification_restored(self) -> bool:
        """Tell the user the clock verified successfully again."""
        return self.send_notification(
            title="Clock Verified",
            message="System time has been verified.",
            urgency=self.URGENCY_LOW,
            icon="emblem-ok",
            timeout_ms=5000,
        )
