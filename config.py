"""
Configuration for the print server status application.

Server behaviour (listeners, authentication, privacy, queues) comes from the
configuration directory, not from here. This class only says where that
directory is and how the Flask process around it runs.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _optional_int(name: str):
    value = os.environ.get(name, "").strip()
    return int(value) if value else None


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    ENVIRONMENT = os.environ.get("ENVIRONMENT", os.environ.get("FLASK_ENV", "development"))

    # Debug mode
    DEBUG = os.environ.get("DEBUG", os.environ.get("FLASK_DEBUG", "0")) == "1"

    # ==========================================================================
    # Server Configuration Directory
    # ==========================================================================
    # Directory holding system.conf plus print/ and print3d/ queue files.
    #
    # CONFIG_DIRECTORY: defaults to ./conf next to this file
    # DEFAULT_PORT: port for the default listener when system.conf has no
    #   Listen directive (unset means 8000 + uid % 1000)
    # CLEANUP_INTERVAL: seconds between job-retention sweeps
    # ==========================================================================
    CONFIG_DIRECTORY = os.environ.get(
        "PRINT_SERVER_CONFIG_DIR", str(BASE_DIR / "conf")
    )
    DEFAULT_PORT = _optional_int("DEFAULT_PORT")
    CLEANUP_INTERVAL = float(os.environ.get("CLEANUP_INTERVAL", "60"))


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    CLEANUP_INTERVAL = 0.05
