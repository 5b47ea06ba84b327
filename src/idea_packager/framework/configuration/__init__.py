"""
Configuration Management

Type-safe packager configuration with YAML and environment variable
sources and pydantic validation.
"""

from .models import (
    IndexConfiguration,
    PackagingConfiguration,
    RepositoryConfiguration,
    LoggingConfiguration,
    PackagerConfiguration
)

from .sources import (
    ConfigurationSource,
    YAMLConfigurationSource,
    EnvironmentConfigurationSource
)

from .validation import (
    ConfigurationValidator,
    ConfigurationValidationError
)

from .core import PackagerSettings

from .builder import (
    ConfigurationBuilder,
    load_configuration_from_file,
    load_default_configuration
)

__all__ = [
    # Models
    'IndexConfiguration',
    'PackagingConfiguration',
    'RepositoryConfiguration',
    'LoggingConfiguration',
    'PackagerConfiguration',

    # Sources
    'ConfigurationSource',
    'YAMLConfigurationSource',
    'EnvironmentConfigurationSource',

    # Validation
    'ConfigurationValidator',
    'ConfigurationValidationError',

    # Core
    'PackagerSettings',

    # Builder
    'ConfigurationBuilder',
    'load_configuration_from_file',
    'load_default_configuration'
]
