"""
Flask application factory for the rain commit job.
"""
import os
import logging
import atexit
from typing import Optional
from flask import Flask

from .config import load_config, CONFIG_ENV_VAR
from .git_repo import GitRepository
from .scheduler import start_scheduler
from .state import StateStore
from .views import bp as main_bp
from .weather import WeatherClient

logger = logging.getLogger(__name__)


def create_app(config_path: Optional[str] = None, start_background: bool = True):
    """
    Create and configure the Flask application.

    Bootstraps the working copy and opens the state store before
    anything else; failures there propagate to the caller.

    Args:
        config_path: JSON config file (defaults to $RAINAPP_CONFIG)
        start_background: Start the weather and commit threads

    Returns:
        Configured Flask app instance
    """
    config = load_config(config_path or os.environ.get(CONFIG_ENV_VAR))

    repo = GitRepository(
        config["repository"],
        config["forkDir"],
        remote=config["remote"],
        branch=config["branch"],
    )
    repo.ensure_present()
    logger.info("[APP] Working copy ready at %s", repo.path)

    store = StateStore.open(config["stateFile"])
    client = WeatherClient(config["OpenWeatherMapQuery"], timeout=config["requestTimeout"])

    app = Flask(__name__)
    app.json.ensure_ascii = False  # Droplet glyphs in JSON
    app.config["RAINAPP"] = config
    app.config["STATE_STORE"] = store
    app.config["WEATHER_CLIENT"] = client
    app.config["REPOSITORY"] = repo

    app.register_blueprint(main_bp)
    logger.info("[APP] Registered main blueprint")

    if start_background:
        start_scheduler(store, client, repo, config["outputFile"])
        logger.info("[APP] Scheduler started")

    atexit.register(log_final_state, store)

    logger.info("[APP] Application created successfully")
    return app


def log_final_state(store: StateStore):
    """Log the last known state on shutdown."""
    logger.info("[APP] Shutting down with %s", store.get_state(include_weather=False))
