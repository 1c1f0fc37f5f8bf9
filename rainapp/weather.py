"""
OpenWeatherMap client and precipitation normalization.
"""
import math
import logging
import requests
from typing import Optional, Dict, Any
from datetime import datetime

from .config import WEATHER_URL, DEFAULT_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class WeatherError(Exception):
    """Base exception for weather provider errors."""
    pass


class WeatherTimeoutError(WeatherError):
    """Provider did not respond within timeout period."""
    pass


class WeatherHTTPError(WeatherError):
    """Provider answered with a non-200 status."""
    pass


class WeatherDataError(WeatherError):
    """Provider returned a body that is not a JSON object."""
    pass


# Reporting period -> number of hours it covers, in priority order
PERIOD_HOURS = (
    ("1h", 1),
    ("3h", 3),
    ("6h", 6),
    ("12h", 12),
    ("24h", 24),
    ("day", 24),
)


# ============================================================================
# Precipitation Normalization
# ============================================================================

def _amount(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if amount < 0 or not math.isfinite(amount):
        return None
    return amount


def period_rate(periods: Any) -> float:
    """
    Hourly-equivalent rate from a ``{"1h": .., "3h": ..}`` mapping.

    The shortest reported period wins; longer ones are only used
    when every shorter one is absent.
    """
    if not isinstance(periods, dict):
        return 0.0

    for label, hours in PERIOD_HOURS:
        amount = _amount(periods.get(label))
        if amount is not None:
            return amount / hours
    return 0.0


def hourly_rate(weather: Optional[Dict[str, Any]]) -> float:
    """Rain plus snow, each normalized to an hourly rate."""
    if not weather:
        return 0.0
    return period_rate(weather.get("rain")) + period_rate(weather.get("snow"))


def has_snow(weather: Optional[Dict[str, Any]]) -> bool:
    """True if the snapshot carries any usable snow figure."""
    if not weather or not isinstance(weather.get("snow"), dict):
        return False
    return any(_amount(weather["snow"].get(label)) is not None for label, _ in PERIOD_HOURS)


# ============================================================================
# Provider Client
# ============================================================================

class WeatherClient:
    """
    Fetches current weather from OpenWeatherMap.
    Tracks errors so the status page can report provider health.
    """

    def __init__(self, query: Dict[str, Any], timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 url: str = WEATHER_URL):
        """
        Initialize the client.

        Args:
            query: Query parameters forwarded verbatim (q/id, appid, units...)
            timeout: Request timeout in seconds
            url: Provider endpoint
        """
        self.query = dict(query)
        self.timeout = timeout
        self.url = url

        # Error tracking
        self._consecutive_errors = 0
        self._last_error: Optional[str] = None
        self._last_success: Optional[datetime] = None

    def fetch(self) -> Dict[str, Any]:
        """
        Get the current weather snapshot.

        Raises:
            WeatherError: on any transport, status or decoding failure
        """
        logger.info(f"[WEATHER] Querying {self.url}")

        try:
            response = requests.get(self.url, params=self.query, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            self._handle_error(f"Weather timeout after {self.timeout}s")
            raise WeatherTimeoutError(f"Weather timeout after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            self._handle_error(f"Cannot reach weather provider: {e}")
            raise WeatherError(f"Cannot reach weather provider: {e}") from e

        if response.status_code != 200:
            error_msg = f"HTTP error from weather provider: {response.status_code} {response.reason}"
            self._handle_error(error_msg)
            raise WeatherHTTPError(error_msg)

        try:
            data = response.json()
        except ValueError as e:
            self._handle_error("Invalid JSON response from weather provider")
            raise WeatherDataError("Invalid JSON response from weather provider") from e

        if not isinstance(data, dict):
            error_msg = f"Unexpected weather payload type: {type(data).__name__}"
            self._handle_error(error_msg)
            raise WeatherDataError(error_msg)

        self._consecutive_errors = 0
        self._last_error = None
        self._last_success = datetime.now()

        logger.debug(f"[WEATHER] Raw response: {data}")
        return data

    def _handle_error(self, error_msg: str):
        """Track errors for monitoring."""
        self._consecutive_errors += 1
        self._last_error = error_msg
        logger.warning(f"[WEATHER] Error #{self._consecutive_errors}: {error_msg}")

    def get_status(self) -> Dict:
        """Get provider health status for monitoring."""
        return {
            "url": self.url,
            "consecutive_errors": self._consecutive_errors,
            "last_error": self._last_error,
            "last_success": self._last_success.isoformat() if self._last_success else None,
        }
