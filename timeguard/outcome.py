"""Verification outcomes and user-facing messages for Timeguard."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PlatformUnsupportedError(RuntimeError):
    """Raised when the platform cannot report the kernel boot time."""


class Outcome(Enum):
    """Terminal states of a single verification call."""

    UNALTERED = "unaltered"
    CORRECTED = "corrected"
    SERVER_ERROR = "server_error"
    PARSING_ERROR = "parsing_error"
    CLOCK_STILL_INCONSISTENT = "clock_still_inconsistent"
    # Reserved: no code path produces this yet
    SMALL_TIME_DIFFERENCE = "small_time_difference"
    PLATFORM_UNSUPPORTED = "platform_unsupported"

    @property
    def message(self) -> str:
        return MESSAGES[self]

    @property
    def is_failure(self) -> bool:
        return self not in (Outcome.UNALTERED, Outcome.CORRECTED)


MESSAGES = {
    Outcome.UNALTERED: "Date not altered.",
    Outcome.CORRECTED: "Date not altered.",
    Outcome.SERVER_ERROR: "Server error. Please try again later.",
    Outcome.PARSING_ERROR: "Couldn't read data from server. Please try again later.",
    Outcome.CLOCK_STILL_INCONSISTENT: (
        "Open your system date & time settings and enable automatic time."
    ),
    Outcome.SMALL_TIME_DIFFERENCE: "Please contact your system administrator.",
    Outcome.PLATFORM_UNSUPPORTED: (
        "This platform cannot report its boot time. Time verification is unavailable."
    ),
}

# Delivered to callbacks when verification raised instead of producing an outcome
VERIFICATION_FAILED_MESSAGE = "Time could not be verified. Please try again later."


@dataclass(frozen=True)
class VerificationResult:
    """Result delivered to callers of the time integrity check."""

    success: bool
    timestamp: datetime
    outcome: Outcome

    @property
    def message(self) -> str:
        return self.outcome.message

    def as_tuple(self) -> tuple[bool, datetime, str]:
        """Return (success, timestamp, message) as handed to callbacks."""
        return self.success, self.timestamp, self.message

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "outcome": self.outcome.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
        }
