"""Boot-time baseline persistence for Timeguard."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

log = logging.getLogger(__name__)

ACTUAL_BOOT_TIME_KEY = "actualBootTimeInterval"
DEFAULT_BOOT_TIME_KEY = "defaultBootTimeInterval"
BASELINE_KEYS = (ACTUAL_BOOT_TIME_KEY, DEFAULT_BOOT_TIME_KEY)


@dataclass(frozen=True)
class BootTimeBaseline:
    """Boot time observed at the last verification, plus its drift-adjusted value."""

    default_boot_time: float
    actual_boot_time: float


class BaselineStore(ABC):
    """Named float storage that survives process restarts."""

    @abstractmethod
    def get_value(self, key: str) -> Optional[float]:
        """Return the stored value, or None if never set."""
        pass

    @abstractmethod
    def set_value(self, key: str, value: float) -> None:
        """Store a value, silently overwriting any previous one."""
        pass

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove a single value."""
        pass

    @abstractmethod
    def clear_all(self) -> None:
        """Remove every stored value."""
        pass

    def get_baseline(self) -> Optional[BootTimeBaseline]:
        """Return the baseline, or None unless both values are present."""
        default = self.get_value(DEFAULT_BOOT_TIME_KEY)
        actual = self.get_value(ACTUAL_BOOT_TIME_KEY)
        if default is None or actual is None:
            return None
        return BootTimeBaseline(default_boot_time=default, actual_boot_time=actual)

    def save_baseline(self, baseline: BootTimeBaseline) -> None:
        self.set_value(ACTUAL_BOOT_TIME_KEY, baseline.actual_boot_time)
        self.set_value(DEFAULT_BOOT_TIME_KEY, baseline.default_boot_time)


class MemoryStore(BaselineStore):
    """Process-local store, used for dry runs and tests."""

    def __init__(self, values: Optional[Dict[str, float]] = None):
        self._values: Dict[str, float] = dict(values or {})

    def get_value(self, key: str) -> Optional[float]:
        return self._values.get(key)

    def set_value(self, key: str, value: float) -> None:
        self._values[key] = float(value)

    def clear(self, key: str) -> None:
        self._values.pop(key, None)

    def clear_all(self) -> None:
        self._values.clear()


class JsonFileStore(BaselineStore):
    """Stores values in a JSON file.

    Persistence is best effort: read and write failures are logged and the
    store carries on with what it has in memory.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._values: Dict[str, float] = {}
        self._load_state()

    def _load_state(self) -> None:
        """Load persisted values from disk."""
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
            for key, value in data.get("values", {}).items():
                # bool is an int subclass but never a valid timestamp
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    self._values[key] = float(value)
                else:
                    log.warning(f"Ignoring non-numeric value for {key}")
            log.info(f"Loaded {len(self._values)} baseline values from {self.path}")
        except Exception as e:
            log.error(f"Failed to load baseline: {e}")

    def _save_state(self) -> None:
        """Persist values to disk."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump({"values": self._values}, f, indent=2)
        except Exception as e:
            log.error(f"Failed to save baseline: {e}")

    def get_value(self, key: str) -> Optional[float]:
        return self._values.get(key)

    def set_value(self, key: str, value: float) -> None:
        self._values[key] = float(value)
        self._save_state()

    def clear(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._save_state()
            log.info(f"Cleared baseline value {key}")

    def clear_all(self) -> None:
        self._values.clear()
        self._save_state()
        log.info("Cleared all baseline values")
