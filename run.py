#!/usr/bin/env python3
"""
Main entry point for the rain commit job.
Run with: python3 run.py config.json
"""
import sys
import logging
from rainapp import create_app
from rainapp.config import ConfigError
from rainapp.git_repo import GitError
from rainapp.state import StateError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('rainapp.log'),
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

def main():
    """Bootstrap the working copy, start both loops and serve the status API."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        app = create_app(config_path)
    except (ConfigError, GitError, StateError) as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        sys.exit(1)

    host = app.config["RAINAPP"]["statusHost"]
    port = app.config["RAINAPP"]["statusPort"]
    try:
        logger.info(f"Serving status API on {host}:{port}")

        # debug=False prevents reloader which would start the loops twice
        app.run(
            host=host,
            port=port,
            debug=False,
            use_reloader=False
        )
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
        sys.exit(0)
    except Exception as e:
        logger.critical(f"Fatal error running application: {e}", exc_info=True)
        sys.exit(1)

if __name__ == "__main__":
    main()
