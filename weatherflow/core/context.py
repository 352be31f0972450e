"""Per-traversal execution context shared between node handlers."""

from enum import Enum
from typing import Any, Dict, Optional

from .exceptions import ContextValueTypeError, MissingContextValueError


class ContextKey(str, Enum):
    """Known context slots, named by their wire key."""
    WEATHER_TEMPERATURE = "weather.temperature"


# Fixed value type of every slot.
SLOT_TYPES = {
    ContextKey.WEATHER_TEMPERATURE: float,
}


class ExecutionContext:
    """Typed-slot store created empty at the start of a traversal.

    Writes are checked against the slot type and the last write wins. Reads
    through ``require`` never fall back to a default: a slot that no upstream
    handler wrote is an error.
    """

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id
        self._values: Dict[ContextKey, Any] = {}

    def set(self, key: ContextKey, value: Any) -> None:
        key = ContextKey(key)
        expected = SLOT_TYPES[key]

        if isinstance(value, bool):
            raise ContextValueTypeError(key.value, expected.__name__, type(value).__name__)
        if expected is float and isinstance(value, int):
            value = float(value)
        if not isinstance(value, expected):
            raise ContextValueTypeError(key.value, expected.__name__, type(value).__name__)

        self._values[key] = value

    def require(self, key: ContextKey) -> Any:
        key = ContextKey(key)
        if key not in self._values:
            raise MissingContextValueError(key.value)
        return self._values[key]

    def get(self, key: ContextKey) -> Optional[Any]:
        return self._values.get(ContextKey(key))

    def has(self, key: ContextKey) -> bool:
        return ContextKey(key) in self._values

    def snapshot(self) -> Dict[str, Any]:
        """Return the current slots keyed by wire name."""
        return {key.value: value for key, value in self._values.items()}

    def __len__(self) -> int:
        return len(self._values)
