"""
Print server configuration - Flask Application Entry Point.

This is a slim app factory that:
1. Loads the server configuration directory (fail-fast)
2. Applies the LogLevel/LogFile directives to logging
3. Starts the job cleanup service (separate thread) when a job store is attached
4. Registers route blueprints
5. Sets up JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── load_server(): system.conf -> finalize -> privacy -> queues
    ├── Flask request handling (read-only ServerContext)
    └── Cleanup on shutdown

    JobCleanup Thread (background)
    └── registry.cleanup(clean_jobs) every CLEANUP_INTERVAL seconds

The ServerContext is immutable once loaded. Request handlers only read it.
"""

from __future__ import annotations

import atexit
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from logging_config import setup_logging, get_logger
from core.exceptions import ConfigurationError, PrintServerError
from services.cleanup_service import JobCleanupService
from services.queue_registry import CleanJobs
from services.server_loader import ServerContext, load_server
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In a frozen bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(
    config_object: str = "config.Config",
    context: Optional[ServerContext] = None,
    clean_jobs: Optional[CleanJobs] = None,
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: If system.conf is invalid the app will not start.

    Args:
        config_object: Import path of the Flask config class
        context: Already-loaded server context (loaded from
            CONFIG_DIRECTORY when None)
        clean_jobs: Job-retention callable; the cleanup thread only runs
            when one is supplied

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: If the server configuration cannot be loaded
    """
    # Load .env from base path (next to executable in production)
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging (LogLevel/LogFile from system.conf take over below)
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    root_logger = setup_logging(log_level=log_level)

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting print server in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    if context is None:
        config_dir = app.config["CONFIG_DIRECTORY"]
        try:
            context = load_server(
                config_dir,
                configure_logging=True,
                default_port=app.config.get("DEFAULT_PORT"),
            )
        except ConfigurationError as e:
            logger.error(f"FATAL: Cannot start server - {e}")
            raise

    # Store in app config for access by routes
    app.config["SERVER_CONTEXT"] = context

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    cleanup_service = None
    if clean_jobs is not None:
        cleanup_service = JobCleanupService(
            context.registry,
            clean_jobs,
            interval_seconds=app.config.get("CLEANUP_INTERVAL", 60.0),
        )
        cleanup_service.start()
        logger.info("Job cleanup service started")
    else:
        logger.info("No job store attached, job cleanup disabled")

    app.config["CLEANUP_SERVICE"] = cleanup_service

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        if cleanup_service:
            cleanup_service.stop()

        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(404)
    def handle_not_found(e):
        return {"error": "Not found"}, 404

    @app.errorhandler(PrintServerError)
    def handle_server_error(e):
        logger.error(f"Request failed: {e}", exc_info=True)
        return {"error": e.message, "details": e.details}, 500

    @app.errorhandler(500)
    def handle_internal_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "Internal server error"}, 500

    logger.info(
        f"Server initialized: {len(context.registry)} queue(s), "
        f"{len(context.config.listeners)} listener(s)"
    )
    return app


def main() -> int:
    """
    Command-line entry point.

    Returns:
        Process exit status
    """
    try:
        app = create_app()
    except ConfigurationError as e:
        print(f"ippserver: {e}", file=sys.stderr)
        return 1

    app.run(debug=app.config.get("DEBUG", False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
