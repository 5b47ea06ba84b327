"""
Plugin Index Module

Persistent id -> (install path, descriptor) index over a platform root.

The index is built by scanning ``<root>/plugins/*`` and
``<root>/lib/modules/*.jar`` and cached in ``<root>/plugins.idx``. A cache
that cannot be read for any reason is deleted and rebuilt from the scan.
"""

import io
import logging
import os
import struct
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Dict, List, Mapping, Optional, Tuple

from .descriptor import PluginDescriptor
from .metadata import extract_plugin_metadata
from ..infrastructure.exceptions import PluginIndexError, WrongIndexVersionError

logger = logging.getLogger(__name__)

INDEX_FILENAME = "plugins.idx"
INDEX_VERSION = 2

IndexEntry = Tuple[Path, PluginDescriptor]

_INT32 = struct.Struct(">i")


class ModulePrecedence(Enum):
    """Which scan wins when a plugin directory and a platform module share an id."""
    MODULES = "modules"
    PLUGINS = "plugins"


class IndexCodec:
    """
    Binary layout of the index file.

    ``int32 version, int32 count`` followed by two string arrays of length
    ``count``: install paths relative to the root and descriptor markup.
    Every array is prefixed with its own int32 length and every string is an
    int32 byte length followed by UTF-8 bytes. All integers are big-endian.
    """

    @staticmethod
    def encode(entries: Mapping[str, IndexEntry], root: Path) -> bytes:
        values = list(entries.values())
        paths = [_relative_path(path, root) for path, _ in values]
        descriptors = [descriptor.to_xml_str() for _, descriptor in values]

        buffer = io.BytesIO()
        buffer.write(_INT32.pack(INDEX_VERSION))
        buffer.write(_INT32.pack(len(values)))
        IndexCodec._write_strings(buffer, paths)
        IndexCodec._write_strings(buffer, descriptors)
        return buffer.getvalue()

    @staticmethod
    def decode(data: bytes, root: Path) -> Dict[str, IndexEntry]:
        stream = io.BytesIO(data)
        version = IndexCodec._read_int(stream)
        size = IndexCodec._read_int(stream)
        if version != INDEX_VERSION:
            raise WrongIndexVersionError(version, INDEX_VERSION)

        paths = IndexCodec._read_strings(stream)
        descriptors = IndexCodec._read_strings(stream)
        if not (len(paths) == len(descriptors) == size):
            raise PluginIndexError(
                f"Data size mismatch: {len(paths)} - {len(descriptors)} {size}"
            )
        if stream.read(1):
            raise PluginIndexError("Trailing data after index payload")

        result: Dict[str, IndexEntry] = {}
        for path, markup in zip(paths, descriptors):
            descriptor = PluginDescriptor.load(markup)
            install_path = Path(os.path.normpath(root.joinpath(*PurePosixPath(path).parts)))
            result[descriptor.id] = (install_path, descriptor)
        return result

    @staticmethod
    def _read_int(stream: BinaryIO) -> int:
        raw = stream.read(_INT32.size)
        if len(raw) != _INT32.size:
            raise PluginIndexError("Unexpected end of index file")
        return _INT32.unpack(raw)[0]

    @staticmethod
    def _read_strings(stream: BinaryIO) -> List[str]:
        count = IndexCodec._read_int(stream)
        if count < 0:
            raise PluginIndexError(f"Negative array length: {count}")
        values = []
        for _ in range(count):
            length = IndexCodec._read_int(stream)
            if length < 0:
                raise PluginIndexError(f"Negative string length: {length}")
            raw = stream.read(length)
            if len(raw) != length:
                raise PluginIndexError("Unexpected end of index file")
            values.append(raw.decode("utf-8"))
        return values

    @staticmethod
    def _write_strings(stream: BinaryIO, values: List[str]) -> None:
        stream.write(_INT32.pack(len(values)))
        for value in values:
            raw = value.encode("utf-8")
            stream.write(_INT32.pack(len(raw)))
            stream.write(raw)


def _relative_path(path: Path, root: Path) -> str:
    # Paths outside the root are kept as ../ segments.
    return PurePosixPath(*Path(os.path.relpath(path, root)).parts).as_posix()


class PluginIndex:
    """
    Index of the plugins installed into one platform root.

    Construction only records the root; ``initialize()`` loads the cached
    index or builds a fresh one. Every ``put`` is written through to disk.
    The index assumes a single writer per root.
    """

    def __init__(self, root_dir: Path, module_precedence: ModulePrecedence = ModulePrecedence.MODULES):
        self.root_dir = Path(root_dir)
        self.index_file = self.root_dir / INDEX_FILENAME
        self.module_precedence = ModulePrecedence(module_precedence)
        self._entries: Optional[Dict[str, IndexEntry]] = None

    @classmethod
    def open(cls, root_dir: Path, module_precedence: ModulePrecedence = ModulePrecedence.MODULES) -> "PluginIndex":
        """Create an index for ``root_dir`` and initialize it."""
        return cls(root_dir, module_precedence).initialize()

    @classmethod
    def from_settings(cls, settings) -> "PluginIndex":
        """Build an (uninitialized) index from PackagerSettings."""
        index_config = settings.get_index_config()
        if not index_config.root_dir:
            raise PluginIndexError("index.root_dir is not configured")
        return cls(Path(index_config.root_dir), ModulePrecedence(index_config.module_precedence))

    @property
    def is_initialized(self) -> bool:
        return self._entries is not None

    def initialize(self) -> "PluginIndex":
        """Load the index file, or rebuild and save it when absent or unreadable."""
        if self.index_file.exists():
            try:
                self._entries = self._load_from_file()
                logger.debug(
                    "Plugin index loaded",
                    extra={"index_file": str(self.index_file), "entries": len(self._entries)}
                )
                return self
            except Exception as e:
                logger.warning(f"Failed to load plugin index from disk: {e}")
                self.index_file.unlink(missing_ok=True)

        self._entries = self._build_and_save()
        return self

    def rebuild(self) -> "PluginIndex":
        """Discard the in-memory state and the file, then rescan."""
        self.index_file.unlink(missing_ok=True)
        self._entries = self._build_and_save()
        return self

    # Lookups

    def contains(self, plugin_id: str) -> bool:
        return plugin_id in self._require_entries()

    def __contains__(self, plugin_id: str) -> bool:
        return self.contains(plugin_id)

    def __len__(self) -> int:
        return len(self._require_entries())

    def install_root(self, plugin_id: str) -> Optional[Path]:
        entry = self._require_entries().get(plugin_id)
        return entry[0] if entry else None

    def descriptor(self, plugin_id: str) -> Optional[PluginDescriptor]:
        entry = self._require_entries().get(plugin_id)
        return entry[1] if entry else None

    def all_descriptors(self) -> List[PluginDescriptor]:
        return [descriptor for _, descriptor in self._require_entries().values()]

    def entries(self) -> Dict[str, IndexEntry]:
        """Snapshot of all entries."""
        return dict(self._require_entries())

    def put(self, descriptor: PluginDescriptor, install_path: Path) -> None:
        """Add or replace the entry for ``descriptor.id`` and persist the index."""
        entries = self._require_entries()
        entries[descriptor.id] = (Path(install_path), descriptor)
        self._save_quietly(entries)

    # Persistence

    def _require_entries(self) -> Dict[str, IndexEntry]:
        if self._entries is None:
            raise PluginIndexError(
                "Plugin index used before initialize()", index_file=str(self.index_file)
            )
        return self._entries

    def _load_from_file(self) -> Dict[str, IndexEntry]:
        with open(self.index_file, "rb") as f:
            return IndexCodec.decode(f.read(), self.root_dir)

    def _save_to_file(self, entries: Mapping[str, IndexEntry]) -> None:
        data = IndexCodec.encode(entries, self.root_dir)
        with open(self.index_file, "wb") as f:
            f.write(data)

    def _save_quietly(self, entries: Mapping[str, IndexEntry]) -> None:
        try:
            self._save_to_file(entries)
        except Exception as e:
            logger.warning(f"Failed to write back plugin index: {e}")

    def _build_and_save(self) -> Dict[str, IndexEntry]:
        plugins = self._build_from_plugins_dir()
        modules = self._build_from_modules_dir()

        if self.module_precedence is ModulePrecedence.MODULES:
            entries = self._merge(plugins, modules)
        else:
            entries = self._merge(modules, plugins)

        plugin_ids = ", ".join(sorted(k for k in entries if k.strip()))
        logger.info(f"Plugin ids from {INDEX_FILENAME}: {plugin_ids}")

        self._save_quietly(entries)
        return entries

    @staticmethod
    def _merge(first: Dict[str, IndexEntry], second: Dict[str, IndexEntry]) -> Dict[str, IndexEntry]:
        merged = dict(first)
        for key, entry in second.items():
            if key in merged:
                logger.warning(
                    f"Plugin id collision in index: {key}",
                    extra={"replaced_path": str(merged[key][0]), "winning_path": str(entry[0])}
                )
            merged[key] = entry
        return merged

    def _build_from_plugins_dir(self) -> Dict[str, IndexEntry]:
        plugins_dir = self.root_dir / "plugins"
        if not plugins_dir.is_dir():
            logger.warning(f"Plugins directory does not exist: {plugins_dir}")
            return {}

        result: Dict[str, IndexEntry] = {}
        for plugin_dir in sorted(plugins_dir.iterdir()):
            try:
                descriptor = extract_plugin_metadata(plugin_dir)
            except Exception as e:
                logger.warning(f"Failed to add plugin to index: {e}", extra={"plugin_dir": str(plugin_dir)})
                continue
            result[descriptor.id] = (plugin_dir, descriptor)
        return result

    def _build_from_modules_dir(self) -> Dict[str, IndexEntry]:
        # Platform modules are indexed as opaque units without dependencies;
        # resolving them like regular plugins breaks dependency resolution.
        modules_dir = self.root_dir / "lib" / "modules"
        if not modules_dir.is_dir():
            return {}

        result: Dict[str, IndexEntry] = {}
        for jar in sorted(modules_dir.glob("*.jar")):
            if jar.is_file():
                module_name = jar.name[:-len(".jar")]
                result[module_name] = (jar, PluginDescriptor.of_id(module_name))
        return result
