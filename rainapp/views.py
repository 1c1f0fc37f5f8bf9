"""
Flask views for monitoring the rain commit job.
"""
import logging
from datetime import datetime
from flask import Blueprint, current_app, jsonify

from .readme import render_status
from .scheduler import next_weather_delay, should_commit

logger = logging.getLogger(__name__)

bp = Blueprint("main", __name__)


def _store():
    return current_app.config["STATE_STORE"]


# ============================================================================
# API Routes (for status monitoring)
# ============================================================================

@bp.route("/api/status")
def api_status():
    """Get accumulator state and collaborator health as JSON."""
    try:
        state = _store().get_state()
        summary = {k: v for k, v in state.items() if k != "weather"}
        return jsonify({
            "state": summary,
            "nextFetchInSec": next_weather_delay(state) / 1000.0,
            "commitDue": should_commit(state),
            "weather_client": current_app.config["WEATHER_CLIENT"].get_status(),
            "repository": current_app.config["REPOSITORY"].get_status(),
            "timestamp": datetime.now().isoformat(),
        })
    except Exception as e:
        logger.exception("[VIEWS] Error in /api/status")
        return jsonify({"error": str(e)}), 500


@bp.route("/api/weather")
def api_weather():
    """Get the last raw weather snapshot."""
    weather = _store().get_state()["weather"]
    if weather is None:
        return jsonify({"error": "No weather fetched yet"}), 404
    return jsonify(weather)


@bp.route("/api/readme")
def api_readme():
    """Preview the document the next commit would publish."""
    state = _store().get_state()
    return jsonify(render_status(state["weather"], state["totalRain"]))


# ============================================================================
# Error Handlers
# ============================================================================

@bp.app_errorhandler(404)
def not_found(error):
    """Handle 404 errors."""
    return jsonify({"error": "The requested page does not exist."}), 404


@bp.app_errorhandler(500)
def internal_error(error):
    """Handle 500 errors."""
    logger.error(f"[VIEWS] Internal server error: {error}")
    return jsonify({"error": "An internal error occurred."}), 500
