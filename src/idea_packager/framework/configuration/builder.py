"""
Configuration builder for creating PackagerSettings instances.
"""

from typing import List, Union
from pathlib import Path

from .core import PackagerSettings
from .sources import ConfigurationSource, YAMLConfigurationSource, EnvironmentConfigurationSource


class ConfigurationBuilder:
    """
    Builder for creating PackagerSettings instances with multiple sources.

    Supports YAML files, environment variables and custom sources.
    """

    def __init__(self):
        self._sources: List[ConfigurationSource] = []

    def add_yaml_source(self, path: Union[str, Path], priority: int = 100) -> 'ConfigurationBuilder':
        """
        Add a YAML configuration source.

        Args:
            path: Path to the YAML configuration file
            priority: Priority of this source (higher = more important)
        """
        self._sources.append(YAMLConfigurationSource(path, priority))
        return self

    def add_environment_source(self, prefix: str = "IDEA_PACKAGER_", priority: int = 200) -> 'ConfigurationBuilder':
        """
        Add environment variable configuration source.

        Args:
            prefix: Environment variable prefix (default: IDEA_PACKAGER_)
            priority: Priority of this source (higher = more important)
        """
        self._sources.append(EnvironmentConfigurationSource(prefix, priority))
        return self

    def add_source(self, source: ConfigurationSource) -> 'ConfigurationBuilder':
        """Add a custom configuration source."""
        self._sources.append(source)
        return self

    def add_defaults(self) -> 'ConfigurationBuilder':
        """Add default configuration sources (environment variables with IDEA_PACKAGER_ prefix)."""
        return self.add_environment_source()

    def build(self) -> PackagerSettings:
        """
        Build the settings instance with all added sources.

        Returns:
            PackagerSettings instance with all sources loaded and merged
        """
        if not self._sources:
            self.add_defaults()

        return PackagerSettings(self._sources.copy())


def load_configuration_from_file(file_path: Union[str, Path]) -> PackagerSettings:
    """
    Load configuration from a single YAML file with environment variable overrides.
    """
    return (ConfigurationBuilder()
            .add_yaml_source(file_path, 100)
            .add_environment_source()
            .build())


def load_default_configuration() -> PackagerSettings:
    """Load default configuration with environment variable support."""
    return ConfigurationBuilder().add_defaults().build()
