"""
Configuration settings for the rain commit job.
"""
import os
import json
import logging
from typing import Dict, Any

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Config file missing, unreadable or incomplete."""
    pass


# ============================================================================
# Weather Provider
# ============================================================================

WEATHER_URL = "http://api.openweathermap.org/data/2.5/weather"

# Icon images referenced from the status document
WEATHER_ICON_URL = "http://openweathermap.org/img/w/{icon}.png"

# Weather request timeout (seconds)
DEFAULT_REQUEST_TIMEOUT = 30.0

# ============================================================================
# Scheduler Configuration
# ============================================================================

# Minimum time between two weather fetches (ms)
FETCH_INTERVAL_MS = 3600 * 1000

# Rain-time needed before a commit fires (droplets * ms)
COMMIT_INTERVAL_MS = 3600 * 1000

# How often the commit loop re-checks the threshold (seconds)
COMMIT_POLL_SEC = 30

# Delay after a failed commit attempt (seconds)
COMMIT_RETRY_SEC = 10

# Delay after an unexpected error in either loop (seconds)
LOOP_ERROR_SLEEP_SEC = 60

# ============================================================================
# Status Document
# ============================================================================

RAIN_GLYPH = "💧"
SNOW_GLYPH = "⛷"

DATE_FORMAT = "%B {day} %Y, %I:%M %p"

# ============================================================================
# Repository Defaults
# ============================================================================

DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "master"
DEFAULT_OUTPUT_FILE = "README.md"

# ============================================================================
# Status Web Server
# ============================================================================

DEFAULT_STATUS_HOST = "127.0.0.1"
DEFAULT_STATUS_PORT = 8080

# Environment variable consulted when no config path is given
CONFIG_ENV_VAR = "RAINAPP_CONFIG"

REQUIRED_KEYS = ("repository", "forkDir", "stateFile", "OpenWeatherMapQuery")


# ============================================================================
# Config File Loading
# ============================================================================

def load_config(path: str) -> Dict[str, Any]:
    """
    Load and validate the JSON config file.

    Relative ``forkDir`` and ``stateFile`` paths are resolved against the
    directory holding the config file.

    Raises:
        ConfigError: if the file cannot be read or lacks required keys
    """
    if not path:
        raise ConfigError(f"No config file given (pass a path or set {CONFIG_ENV_VAR})")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ConfigError(f"Config file {path} is missing keys: {', '.join(missing)}")

    if not isinstance(data["OpenWeatherMapQuery"], dict):
        raise ConfigError("OpenWeatherMapQuery must be a JSON object")

    base_dir = os.path.dirname(os.path.abspath(path))

    config = {
        "repository": data["repository"],
        "forkDir": os.path.join(base_dir, data["forkDir"]),
        "stateFile": os.path.join(base_dir, data["stateFile"]),
        "OpenWeatherMapQuery": dict(data["OpenWeatherMapQuery"]),
        "remote": data.get("remote", DEFAULT_REMOTE),
        "branch": data.get("branch", DEFAULT_BRANCH),
        "outputFile": data.get("outputFile", DEFAULT_OUTPUT_FILE),
        "statusHost": data.get("statusHost", DEFAULT_STATUS_HOST),
    }

    try:
        config["requestTimeout"] = float(data.get("requestTimeout", DEFAULT_REQUEST_TIMEOUT))
        config["statusPort"] = int(data.get("statusPort", DEFAULT_STATUS_PORT))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric setting in {path}: {e}") from e

    logger.info("=" * 60)
    logger.info("Configuration loaded from: %s", path)
    logger.info("Repository: %s", config["repository"])
    logger.info("Working copy: %s", config["forkDir"])
    logger.info("State file: %s", config["stateFile"])
    logger.info("Push target: %s/%s", config["remote"], config["branch"])
    logger.info("=" * 60)
    return config
