"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.
"""

import os
from typing import Optional

from consultation_service.domain.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from consultation_service.infrastructure.config_manager import (
    ConfigManager,
    DatabaseConfig,
    SearchConfig,
)

# Application metadata
APP_NAME = "consultationApp"
APP_VERSION = "1.0.0"

# Base path of the REST API
DEFAULT_API_PREFIX = "/api"


class Settings:
    """Application settings loaded from configuration manager and environment.

    The application name is read once at construction; it is embedded in the
    entity alert headers and never changes afterwards.
    """

    def __init__(self):
        """Initialize settings from configuration manager and environment."""
        self._db_config: Optional[DatabaseConfig] = None
        self._search_config: Optional[SearchConfig] = None
        self._config_manager: Optional[ConfigManager] = None

        self.app_name = os.getenv("CONSULTATION_APP_NAME", APP_NAME)
        self.app_version = APP_VERSION
        self.api_prefix = os.getenv("CONSULTATION_API_PREFIX", DEFAULT_API_PREFIX).rstrip("/")

        # Pagination
        self.default_page_size = int(os.getenv("CONSULTATION_DEFAULT_PAGE_SIZE", str(DEFAULT_PAGE_SIZE)))
        self.max_page_size = int(os.getenv("CONSULTATION_MAX_PAGE_SIZE", str(MAX_PAGE_SIZE)))

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"

    @property
    def config_manager(self) -> ConfigManager:
        """Get configuration manager instance."""
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager

    @property
    def db_config(self) -> DatabaseConfig:
        """Get database configuration (loaded lazily on first access)."""
        if self._db_config is None:
            self._db_config = self.config_manager.get_database_config()
        return self._db_config

    @property
    def search_config(self) -> SearchConfig:
        """Get search index configuration (loaded lazily on first access)."""
        if self._search_config is None:
            self._search_config = self.config_manager.get_search_config()
        return self._search_config


# Global settings instance
settings = Settings()
