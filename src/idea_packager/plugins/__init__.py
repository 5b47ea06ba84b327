"""
Installed-plugin metadata: descriptors, the on-disk plugin index and
repository download URLs.
"""

from .descriptor import Dependency, PluginDescriptor
from .metadata import extract_plugin_metadata
from .index import INDEX_FILENAME, INDEX_VERSION, IndexCodec, ModulePrecedence, PluginIndex
from .repository import ArtifactKind, ArtifactPart, BuildInfo, IdeaEdition, PluginRef, PluginRepository

__all__ = [
    'Dependency',
    'PluginDescriptor',
    'extract_plugin_metadata',
    'INDEX_FILENAME',
    'INDEX_VERSION',
    'IndexCodec',
    'ModulePrecedence',
    'PluginIndex',
    'ArtifactKind',
    'ArtifactPart',
    'BuildInfo',
    'IdeaEdition',
    'PluginRef',
    'PluginRepository',
]
