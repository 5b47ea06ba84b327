"""
Core configuration management class.
"""

import logging
from typing import Dict, Any, Optional, List

from .models import (
    IndexConfiguration,
    LoggingConfiguration,
    PackagerConfiguration,
    PackagingConfiguration,
    RepositoryConfiguration,
)
from .sources import ConfigurationSource
from .validation import ConfigurationValidator

logger = logging.getLogger(__name__)


class PackagerSettings:
    """
    Merged packager configuration.

    Sources are loaded lowest priority first; later sources override earlier
    ones key by key, nested mappings are merged recursively.
    """

    def __init__(self, sources: Optional[List[ConfigurationSource]] = None):
        self._sources = list(sources or [])
        self._config_data: Dict[str, Any] = {}
        self._config = PackagerConfiguration()

        if self._sources:
            self._load_configuration()

    def add_source(self, source: ConfigurationSource) -> None:
        """Add a configuration source and reload."""
        self._sources.append(source)
        self._load_configuration()

    def _load_configuration(self) -> None:
        """Load and merge configuration from all sources."""
        merged_config: Dict[str, Any] = {}

        for source in sorted(self._sources, key=lambda s: s.get_priority()):
            try:
                source_config = source.load()
            except Exception as e:
                logger.error(f"Failed to load configuration from source: {type(source).__name__}: {e}")
                raise
            merged_config = self._deep_merge(merged_config, source_config)

        for warning in ConfigurationValidator.validate_configuration(merged_config):
            logger.warning(warning)

        known = {k: v for k, v in merged_config.items() if k in ConfigurationValidator.KNOWN_SECTIONS}
        self._config_data = merged_config
        self._config = PackagerConfiguration(**known)

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @property
    def config(self) -> PackagerConfiguration:
        return self._config

    def get_index_config(self) -> IndexConfiguration:
        return self._config.index

    def get_packaging_config(self) -> PackagingConfiguration:
        return self._config.packaging

    def get_repository_config(self) -> RepositoryConfiguration:
        return self._config.repository

    def get_logging_config(self) -> LoggingConfiguration:
        return self._config.logging

    def get_raw_config(self) -> Dict[str, Any]:
        """Get the raw merged configuration data."""
        return self._config_data.copy()
