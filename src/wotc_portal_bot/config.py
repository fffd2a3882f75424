#!/usr/bin/env python3
"""
Configuration Management for the WOTC Portal Bot.

Default settings with environment variable overrides and .env file support.

Usage:
    from wotc_portal_bot.config import config

    scheduler = SubmissionScheduler(..., max_concurrent=config.MAX_CONCURRENT_JOBS)
"""

import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

_SECRET_KEYS = ("WEBHOOK_SECRET", "CSDC_PIN")


class Config:
    """
    Base configuration class with default settings for submission automation.

    All configuration values can be overridden via environment variables
    or .env file.
    """

    def __init__(self):
        """Initialize configuration, loading .env file if it exists."""
        # Project root is two levels above the package directory (src/wotc_portal_bot)
        env_path = Path(__file__).resolve().parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        self._load_config()

    def _load_config(self):
        """Load all configuration values with environment overrides."""
        # ================================
        # SCHEDULER SETTINGS
        # ================================
        self.POLL_INTERVAL_SECONDS = self._get_float_env("POLL_INTERVAL_SECONDS", 60.0)
        self.MAX_CONCURRENT_JOBS = self._get_int_env("MAX_CONCURRENT_JOBS", 5)
        self.RETRY_DELAY_BASE_SECONDS = self._get_float_env("RETRY_DELAY_BASE_SECONDS", 5.0)
        self.MAX_RETRIES = self._get_int_env("MAX_RETRIES", 3)

        # Jobs left in_progress by a crashed process
        self.STALE_JOB_TIMEOUT_MINUTES = self._get_float_env("STALE_JOB_TIMEOUT_MINUTES", 60.0)
        self.SWEEP_INTERVAL_SECONDS = self._get_float_env("SWEEP_INTERVAL_SECONDS", 300.0)

        # ================================
        # PORTAL DRIVER SETTINGS
        # ================================
        self.UPLOAD_MAX_ATTEMPTS = self._get_int_env("UPLOAD_MAX_ATTEMPTS", 3)
        self.HEADLESS = self._get_bool_env("HEADLESS", True)
        self.CHROME_BINARY = self._get_env("CHROME_BINARY", "")
        self.LOGIN_TIMEOUT = self._get_float_env("LOGIN_TIMEOUT", 15.0)
        self.ELEMENT_WAIT_TIMEOUT = self._get_float_env("ELEMENT_WAIT_TIMEOUT", 20.0)
        self.VALIDATION_TIMEOUT = self._get_float_env("VALIDATION_TIMEOUT", 60.0)
        self.COMPLETION_TIMEOUT = self._get_float_env("COMPLETION_TIMEOUT", 30.0)
        self.ERROR_TABLE_MAX_PAGES = self._get_int_env("ERROR_TABLE_MAX_PAGES", 50)

        # Human pacing, in seconds
        self.HUMAN_DELAY_MIN = self._get_float_env("HUMAN_DELAY_MIN", 0.8)
        self.HUMAN_DELAY_MAX = self._get_float_env("HUMAN_DELAY_MAX", 2.5)
        self.TYPING_DELAY_MIN = self._get_float_env("TYPING_DELAY_MIN", 0.04)
        self.TYPING_DELAY_MAX = self._get_float_env("TYPING_DELAY_MAX", 0.12)

        # ================================
        # FILE PATHS
        # ================================
        self.SCREENSHOT_DIR = self._get_env("SCREENSHOT_DIR", "screenshots")
        self.UPLOAD_DIR = self._get_env("UPLOAD_DIR", "uploads")
        self.RECORDS_FILE = self._get_env("RECORDS_FILE", "records.json")

        # ================================
        # PERSISTENCE
        # ================================
        self.DATABASE_URL = self._get_env("DATABASE_URL", "sqlite:///wotc_jobs.db")
        self.DATABASE_ECHO = self._get_bool_env("DATABASE_ECHO", False)

        # ================================
        # NOTIFICATIONS
        # ================================
        self.WEBHOOK_URL = self._get_env("WEBHOOK_URL", "")
        self.WEBHOOK_SECRET = self._get_env("WEBHOOK_SECRET", "")
        self.WEBHOOK_TIMEOUT = self._get_float_env("WEBHOOK_TIMEOUT", 30.0)
        self.WEBHOOK_MAX_RETRIES = self._get_int_env("WEBHOOK_MAX_RETRIES", 3)

        # ================================
        # ENCODING
        # ================================
        self.CONSULTANT_EIN = self._get_env("CONSULTANT_EIN", "861505473")
        self.CSDC_PIN = self._get_env("CSDC_PIN", "")

        # ================================
        # LOGGING AND DEBUG SETTINGS
        # ================================
        self.LOG_LEVEL = self._get_env("LOG_LEVEL", "INFO")
        self.ENABLE_DEBUG_LOGS = self._get_bool_env("ENABLE_DEBUG_LOGS", False)
        # Append-only copy of every log line; empty disables it
        self.LOG_FILE = self._get_env("LOG_FILE", "")

    def _get_env(self, key: str, default: str) -> str:
        """Get string environment variable with default."""
        return os.getenv(key, default)

    def _get_int_env(self, key: str, default: int) -> int:
        """Get integer environment variable with default."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError):
            return default

    def _get_float_env(self, key: str, default: float) -> float:
        """Get float environment variable with default."""
        try:
            return float(os.getenv(key, str(default)))
        except (ValueError, TypeError):
            return default

    def _get_bool_env(self, key: str, default: bool) -> bool:
        """Get boolean environment variable with default."""
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on", "enabled")

    def portal_credentials(self, jurisdiction_code: str) -> Dict[str, str]:
        """Credentials for one portal from ``<CODE>_PORTAL_USERNAME`` / ``<CODE>_PORTAL_PASSWORD``.

        Args:
            jurisdiction_code: Two-letter jurisdiction code

        Returns:
            Dict with ``username`` and ``password`` (empty strings when unset)
        """
        code = jurisdiction_code.upper()
        return {
            "username": self._get_env(f"{code}_PORTAL_USERNAME", ""),
            "password": self._get_env(f"{code}_PORTAL_PASSWORD", ""),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dict for logging/debugging, secrets masked."""
        values = {key: value for key, value in self.__dict__.items() if not key.startswith("_")}
        for key in _SECRET_KEYS:
            if values.get(key):
                values[key] = "***"
        return values


class DevelopmentConfig(Config):
    """Development environment configuration with debug settings."""

    def _load_config(self):
        """Load base config then apply development overrides."""
        super()._load_config()

        self.LOG_LEVEL = self._get_env("LOG_LEVEL", "DEBUG")
        self.ENABLE_DEBUG_LOGS = self._get_bool_env("ENABLE_DEBUG_LOGS", True)
        self.HEADLESS = self._get_bool_env("HEADLESS", False)
        # Faster iteration in development
        self.POLL_INTERVAL_SECONDS = self._get_float_env("POLL_INTERVAL_SECONDS", 10.0)
        self.DATABASE_URL = self._get_env("DATABASE_URL", "sqlite:///wotc_jobs.dev.db")


class ProductionConfig(Config):
    """Production environment configuration."""

    def _load_config(self):
        """Load base config then apply production overrides."""
        super()._load_config()

        self.LOG_LEVEL = self._get_env("LOG_LEVEL", "INFO")
        self.ENABLE_DEBUG_LOGS = self._get_bool_env("ENABLE_DEBUG_LOGS", False)
        self.HEADLESS = self._get_bool_env("HEADLESS", True)
        # Portal sessions are audited from the run log
        self.LOG_FILE = self._get_env("LOG_FILE", "wotc_bot.log")
        self.WEBHOOK_MAX_RETRIES = self._get_int_env("WEBHOOK_MAX_RETRIES", 5)


# ================================
# CONFIGURATION FACTORY
# ================================


def get_config() -> Config:
    """Get appropriate configuration based on environment.

    Returns:
        Configuration instance based on WOTC_BOT_ENV environment variable
    """
    env = os.getenv("WOTC_BOT_ENV", "default")

    if env == "development":
        return DevelopmentConfig()
    elif env == "production":
        return ProductionConfig()
    else:
        return Config()


# Global configuration instance
config = get_config()
