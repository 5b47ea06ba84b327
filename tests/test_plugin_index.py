"""
Tests for the persistent plugin index.
"""

import logging
import struct

import pytest

from idea_packager.infrastructure.exceptions import PluginIndexError, WrongIndexVersionError
from idea_packager.plugins.descriptor import PluginDescriptor
from idea_packager.plugins.index import (
    INDEX_FILENAME,
    INDEX_VERSION,
    IndexCodec,
    ModulePrecedence,
    PluginIndex,
)


class TestIndexCodec:
    """Test the binary index layout."""

    def test_header_layout(self, tmp_path):
        entries = {"a": (tmp_path / "plugins" / "a", PluginDescriptor.of_id("a"))}
        data = IndexCodec.encode(entries, tmp_path)

        version, count, path_count, path_len = struct.unpack_from(">iiii", data, 0)
        assert version == INDEX_VERSION == 2
        assert count == 1
        assert path_count == 1
        assert data[16:16 + path_len] == b"plugins/a"

    def test_round_trip(self, tmp_path):
        entries = {
            "a": (tmp_path / "plugins" / "a", PluginDescriptor(id="a", name="A", version="1")),
            "m": (tmp_path / "lib" / "modules" / "m.jar", PluginDescriptor.of_id("m")),
        }
        decoded = IndexCodec.decode(IndexCodec.encode(entries, tmp_path), tmp_path)
        assert decoded == entries

    def test_wrong_version(self, tmp_path):
        data = struct.pack(">ii", 1, 0)
        with pytest.raises(WrongIndexVersionError) as exc_info:
            IndexCodec.decode(data, tmp_path)
        assert exc_info.value.file_version == 1
        assert exc_info.value.error_code == "WRONG_INDEX_VERSION"

    def test_size_mismatch(self, tmp_path):
        data = struct.pack(">iiii", INDEX_VERSION, 3, 0, 0)
        with pytest.raises(PluginIndexError, match="Data size mismatch"):
            IndexCodec.decode(data, tmp_path)

    def test_truncated(self, tmp_path):
        entries = {"a": (tmp_path / "a", PluginDescriptor.of_id("a"))}
        data = IndexCodec.encode(entries, tmp_path)
        with pytest.raises(PluginIndexError, match="Unexpected end"):
            IndexCodec.decode(data[:-3], tmp_path)

    def test_trailing_data(self, tmp_path):
        data = struct.pack(">iiii", INDEX_VERSION, 0, 0, 0) + b"\x00"
        with pytest.raises(PluginIndexError, match="Trailing data"):
            IndexCodec.decode(data, tmp_path)

    def test_negative_length(self, tmp_path):
        data = struct.pack(">iii", INDEX_VERSION, 0, -1)
        with pytest.raises(PluginIndexError, match="Negative"):
            IndexCodec.decode(data, tmp_path)

    def test_path_outside_root(self, tmp_path):
        root = tmp_path / "root"
        entries = {"a": (tmp_path / "elsewhere" / "a", PluginDescriptor.of_id("a"))}
        data = IndexCodec.encode(entries, root)

        assert b"../elsewhere/a" in data
        assert IndexCodec.decode(data, root) == entries


class TestPluginIndexBuild:
    """Test building the index from a platform root."""

    def test_lookup_before_initialize_raises(self, platform_root):
        index = PluginIndex(platform_root)
        assert not index.is_initialized
        assert not (platform_root / INDEX_FILENAME).exists()
        with pytest.raises(PluginIndexError, match="before initialize"):
            index.contains("org.example.packed")

    def test_build_scans_plugins_and_modules(self, platform_root):
        index = PluginIndex.open(platform_root)

        assert index.is_initialized
        assert len(index) == 3
        assert "org.example.exploded" in index
        assert index.install_root("org.example.packed") == platform_root / "plugins" / "packed"
        assert index.descriptor("org.example.packed").version == "2.1"

        module = index.descriptor("intellij.platform.core")
        assert module == PluginDescriptor.of_id("intellij.platform.core")
        assert index.install_root("intellij.platform.core") == (
            platform_root / "lib" / "modules" / "intellij.platform.core.jar"
        )

    def test_build_writes_index_file(self, platform_root):
        PluginIndex.open(platform_root)
        assert (platform_root / INDEX_FILENAME).is_file()

    def test_broken_plugin_is_skipped(self, platform_root, caplog):
        with caplog.at_level(logging.WARNING, logger="idea_packager.plugins.index"):
            index = PluginIndex.open(platform_root)

        assert index.install_root("broken") is None
        assert any("Failed to add plugin to index" in r.getMessage() for r in caplog.records)

    def test_missing_plugins_dir(self, tmp_path, make_jar):
        make_jar(tmp_path / "lib" / "modules" / "only.module.jar", {"x": "y"})
        index = PluginIndex.open(tmp_path)
        assert [d.id for d in index.all_descriptors()] == ["only.module"]

    def test_unknown_ids(self, platform_root):
        index = PluginIndex.open(platform_root)
        assert index.install_root("nope") is None
        assert index.descriptor("nope") is None
        assert not index.contains("nope")

    def test_rebuilt_ids_logged(self, platform_root, caplog):
        with caplog.at_level(logging.INFO, logger="idea_packager.plugins.index"):
            PluginIndex.open(platform_root)
        messages = [r.getMessage() for r in caplog.records]
        assert (
            "Plugin ids from plugins.idx: intellij.platform.core, "
            "org.example.exploded, org.example.packed"
        ) in messages


class TestPluginIndexPersistence:
    """Test loading, self-healing and write-through."""

    def test_reopen_loads_same_entries(self, platform_root):
        first = PluginIndex.open(platform_root)
        second = PluginIndex.open(platform_root)
        assert second.entries() == first.entries()

    def test_reopen_does_not_rescan(self, platform_root):
        PluginIndex.open(platform_root)
        (platform_root / "plugins" / "exploded" / "META-INF" / "plugin.xml").unlink()

        index = PluginIndex.open(platform_root)
        assert "org.example.exploded" in index

    def test_corrupt_file_is_rebuilt(self, platform_root, caplog):
        (platform_root / INDEX_FILENAME).write_bytes(b"\x00\x01garbage")

        with caplog.at_level(logging.WARNING, logger="idea_packager.plugins.index"):
            index = PluginIndex.open(platform_root)

        assert len(index) == 3
        assert any("Failed to load plugin index" in r.getMessage() for r in caplog.records)
        reloaded = IndexCodec.decode((platform_root / INDEX_FILENAME).read_bytes(), platform_root)
        assert reloaded == index.entries()

    def test_wrong_version_file_is_rebuilt(self, platform_root):
        (platform_root / INDEX_FILENAME).write_bytes(struct.pack(">ii", 1, 0))
        index = PluginIndex.open(platform_root)
        assert "org.example.packed" in index

    def test_put_is_written_through(self, platform_root):
        index = PluginIndex.open(platform_root)
        descriptor = PluginDescriptor(id="org.example.new", name="New", version="0.1")
        index.put(descriptor, platform_root / "plugins" / "new")

        reopened = PluginIndex.open(platform_root)
        assert reopened.descriptor("org.example.new") == descriptor
        assert reopened.install_root("org.example.new") == platform_root / "plugins" / "new"

    def test_put_outside_root_is_persisted(self, platform_root, tmp_path):
        index = PluginIndex.open(platform_root)
        external = PluginDescriptor.of_id("org.example.external")
        inside = PluginDescriptor.of_id("org.example.inside")
        index.put(external, tmp_path / "custom" / "external")
        index.put(inside, platform_root / "plugins" / "inside")

        reopened = PluginIndex.open(platform_root)
        assert reopened.install_root("org.example.external") == tmp_path / "custom" / "external"
        assert reopened.descriptor("org.example.inside") == inside
        assert reopened.entries() == index.entries()

    def test_put_failure_is_logged_not_raised(self, platform_root, caplog):
        index = PluginIndex.open(platform_root)
        (platform_root / INDEX_FILENAME).unlink()
        (platform_root / INDEX_FILENAME).mkdir()

        with caplog.at_level(logging.WARNING, logger="idea_packager.plugins.index"):
            index.put(PluginDescriptor.of_id("unsaved"), platform_root / "plugins" / "unsaved")

        assert "unsaved" in index
        assert any("Failed to write back" in r.getMessage() for r in caplog.records)

    def test_build_from_scratch_is_idempotent(self, platform_root):
        first = PluginIndex.open(platform_root).entries()
        (platform_root / INDEX_FILENAME).unlink()
        second = PluginIndex.open(platform_root).entries()

        assert first == second
        assert second == PluginIndex.open(platform_root).entries()

    def test_rebuild_rescans(self, platform_root):
        index = PluginIndex.open(platform_root)
        (platform_root / "plugins" / "broken" / "META-INF").mkdir()
        (platform_root / "plugins" / "broken" / "META-INF" / "plugin.xml").write_text(
            "<idea-plugin><id>fixed</id></idea-plugin>"
        )
        assert "fixed" not in index
        assert "fixed" in index.rebuild()


class TestModulePrecedence:
    """Test resolution of id collisions between plugins and modules."""

    @pytest.fixture
    def colliding_root(self, platform_root, make_jar, plugin_xml):
        make_jar(
            platform_root / "plugins" / "core-copy" / "lib" / "core.jar",
            {"META-INF/plugin.xml": plugin_xml("intellij.platform.core")},
        )
        return platform_root

    def test_modules_win_by_default(self, colliding_root, caplog):
        with caplog.at_level(logging.WARNING, logger="idea_packager.plugins.index"):
            index = PluginIndex.open(colliding_root)

        assert index.install_root("intellij.platform.core").suffix == ".jar"
        assert any("collision" in r.getMessage() for r in caplog.records)

    def test_plugins_win_when_configured(self, colliding_root):
        index = PluginIndex.open(colliding_root, ModulePrecedence.PLUGINS)
        assert index.install_root("intellij.platform.core") == colliding_root / "plugins" / "core-copy"
        assert index.descriptor("intellij.platform.core").version == "1.0"

    def test_precedence_from_string(self, platform_root):
        index = PluginIndex(platform_root, "plugins")
        assert index.module_precedence is ModulePrecedence.PLUGINS
