"""Timeguard - system clock integrity agent."""

from .outcome import Outcome, PlatformUnsupportedError, VerificationResult
from .tamper_detector import TamperDetector

__all__ = ["Outcome", "PlatformUnsupportedError", "TamperDetector", "VerificationResult"]
