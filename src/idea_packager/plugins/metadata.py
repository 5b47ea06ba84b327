"""
Plugin Metadata Extraction

Locates ``META-INF/plugin.xml`` inside an installed plugin, whatever shape
the installation has: a bare plugin archive, an exploded directory, or the
usual ``<plugin>/lib/*.jar`` layout.
"""

import logging
import zipfile
from pathlib import Path
from typing import Optional

from .descriptor import PluginDescriptor
from ..infrastructure.exceptions import PluginDescriptorError

logger = logging.getLogger(__name__)

DESCRIPTOR_ENTRY = "META-INF/plugin.xml"
ARCHIVE_SUFFIXES = (".jar", ".zip")


def extract_plugin_metadata(plugin_path: Path) -> PluginDescriptor:
    """Return the descriptor of the plugin installed at ``plugin_path``."""
    plugin_path = Path(plugin_path)

    if plugin_path.is_file():
        if plugin_path.suffix not in ARCHIVE_SUFFIXES:
            raise PluginDescriptorError(
                f"Not a plugin archive: {plugin_path}", source=str(plugin_path)
            )
        descriptor = _load_from_archive(plugin_path)
        if descriptor is None:
            raise PluginDescriptorError(
                f"No {DESCRIPTOR_ENTRY} in plugin archive {plugin_path}", source=str(plugin_path)
            )
        return descriptor

    if not plugin_path.is_dir():
        raise PluginDescriptorError(f"Plugin path does not exist: {plugin_path}", source=str(plugin_path))

    exploded = plugin_path / DESCRIPTOR_ENTRY
    if exploded.is_file():
        return PluginDescriptor.load(exploded)

    lib_dir = plugin_path / "lib"
    if lib_dir.is_dir():
        for candidate in sorted(lib_dir.iterdir()):
            if candidate.is_file() and candidate.suffix == ".jar":
                descriptor = _load_from_archive(candidate)
                if descriptor is not None:
                    logger.debug(f"Found plugin descriptor in {candidate}")
                    return descriptor
            elif candidate.is_dir() and (candidate / DESCRIPTOR_ENTRY).is_file():
                return PluginDescriptor.load(candidate / DESCRIPTOR_ENTRY)

    raise PluginDescriptorError(
        f"Couldn't find {DESCRIPTOR_ENTRY} in plugin directory {plugin_path}",
        source=str(plugin_path)
    )


def _load_from_archive(archive: Path) -> Optional[PluginDescriptor]:
    try:
        with zipfile.ZipFile(archive) as zf:
            try:
                with zf.open(DESCRIPTOR_ENTRY) as stream:
                    return PluginDescriptor.load(stream)
            except KeyError:
                return None
    except (OSError, zipfile.BadZipFile) as e:
        raise PluginDescriptorError(
            f"Cannot read plugin archive {archive}: {e}", source=str(archive), cause=e
        ) from e
