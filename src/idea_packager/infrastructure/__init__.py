"""
Infrastructure Layer - cross-cutting technical services

Structured exceptions and logging shared by the plugin index and the
packaging pipeline.
"""

from .exceptions import (
    PackagerException,
    ConfigurationError,
    PluginDescriptorError,
    PluginIndexError,
    WrongIndexVersionError,
    MappingError,
    ArtifactBuildError,
)
from .observability import build_context, configure_logging, get_build_id

__all__ = [
    "PackagerException",
    "ConfigurationError",
    "PluginDescriptorError",
    "PluginIndexError",
    "WrongIndexVersionError",
    "MappingError",
    "ArtifactBuildError",
    "build_context",
    "configure_logging",
    "get_build_id",
]
