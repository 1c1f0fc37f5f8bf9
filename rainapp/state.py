"""
Persisted rain accumulation state.
Thread-safe state management shared by the weather and commit loops.
"""
import os
import json
import logging
from threading import Lock
from typing import Callable, Optional, Dict, Any

logger = logging.getLogger(__name__)


class StateError(Exception):
    """State file exists but does not hold a valid state record."""
    pass


STATE_KEYS = ("weather", "totalRain", "timeLastFetch", "timeLastCommit")


def default_state() -> Dict[str, Any]:
    return {
        "weather": None,
        "totalRain": 0,
        "timeLastFetch": 0,
        "timeLastCommit": 0,
    }


# ============================================================================
# State File Operations
# ============================================================================

def load_state(path: str) -> Optional[Dict[str, Any]]:
    """
    Load the state record from disk.

    Returns None if the file doesn't exist. Raises StateError if it exists
    but cannot be parsed as a state record.
    """
    if not os.path.exists(path):
        logger.info(f"[STATE] No state file found at {path}")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StateError(f"Cannot read state file {path}: {e}") from e

    if not isinstance(data, dict):
        raise StateError(f"Invalid data type in {path}, expected object")

    missing = [key for key in STATE_KEYS if key not in data]
    if missing:
        raise StateError(f"State file {path} is missing keys: {', '.join(missing)}")

    for key in ("totalRain", "timeLastFetch", "timeLastCommit"):
        value = data[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise StateError(f"State file {path}: {key} must be a number, got {value!r}")

    if data["weather"] is not None and not isinstance(data["weather"], dict):
        raise StateError(f"State file {path}: weather must be an object or null")

    logger.info(f"[STATE] Loaded state from {path}")
    return data


def save_state(path: str, state: Dict[str, Any]):
    """Overwrite the state file with the full record."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(state, f, ensure_ascii=False)

    logger.debug(f"[STATE] Saved state to {path}")


# ============================================================================
# State Container
# ============================================================================

class StateStore:
    """
    Owns the in-memory state record and its file.

    set_state() and update() are the only ways to change the record;
    every call merges the given fields and rewrites the whole file.
    """

    def __init__(self, path: str, state: Optional[Dict[str, Any]] = None):
        self.path = path
        self._lock = Lock()
        self._state: Dict[str, Any] = dict(state) if state else default_state()

    @classmethod
    def open(cls, path: str) -> "StateStore":
        """Load the store from disk, or initialize and persist defaults."""
        loaded = load_state(path)
        store = cls(path, loaded)
        if loaded is None:
            store.set_state(**default_state())
        logger.info(f"[STATE] Start with {store.get_state(include_weather=False)}")
        return store

    def get_state(self, include_weather: bool = True) -> Dict[str, Any]:
        """Get a snapshot of the state record."""
        with self._lock:
            snapshot = self._state.copy()
        if not include_weather:
            snapshot.pop("weather", None)
        return snapshot

    def set_state(self, **partial) -> bool:
        """
        Merge fields into the state and persist it.

        Returns False if the save failed; memory keeps the new values
        and the file catches up on the next successful save.
        """
        return self.update(lambda current: partial)

    def update(self, func: Callable[[Dict[str, Any]], Dict[str, Any]]) -> bool:
        """
        Merge the fields returned by func(current_state) and persist.

        func runs under the store lock, so increments computed from the
        current values cannot interleave with the other loop.
        """
        with self._lock:
            partial = func(self._state.copy())
            self._state = {**self._state, **partial}
            try:
                save_state(self.path, self._state)
                return True
            except (OSError, TypeError, ValueError) as e:
                logger.warning(f"[STATE] Failed to save state to {self.path}: {e}")
                return False
