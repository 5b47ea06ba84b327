"""
Tests for plugin repository URL construction.
"""

import pytest

from idea_packager.framework.configuration import ConfigurationBuilder, YAMLConfigurationSource
from idea_packager.plugins.repository import (
    ArtifactKind,
    BuildInfo,
    IdeaEdition,
    PluginRef,
    PluginRepository,
)


@pytest.fixture
def build():
    return BuildInfo("231.8109.175", IdeaEdition.COMMUNITY)


class TestPluginRef:
    """Test plugin reference validation."""

    def test_requires_id_or_url(self):
        with pytest.raises(ValueError):
            PluginRef()

    def test_rejects_both(self):
        with pytest.raises(ValueError):
            PluginRef(id="a", url="https://example.com/a.zip")


class TestDownloadUrl:
    """Test the two URL shapes of the repository."""

    def test_pinned_version(self, build):
        url = PluginRepository().download_url(build, PluginRef(id="org.intellij.scala", version="2023.1.15"))
        assert url == (
            "https://plugins.jetbrains.com/plugin/download"
            "?pluginId=org.intellij.scala&version=2023.1.15"
        )

    def test_pinned_version_with_channel(self, build):
        ref = PluginRef(id="org.intellij.scala", version="2023.1.15", channel="nightly")
        url = PluginRepository().download_url(build, ref)
        assert url.endswith("pluginId=org.intellij.scala&version=2023.1.15&channel=nightly")

    def test_latest_compatible(self, build):
        url = PluginRepository().download_url(build, PluginRef(id="org.intellij.scala"))
        assert url == (
            "https://plugins.jetbrains.com/pluginManager"
            "?action=download&id=org.intellij.scala&build=IC-231.8109.175"
        )

    def test_latest_compatible_with_channel_ultimate(self):
        build = BuildInfo("232.1", IdeaEdition.ULTIMATE)
        url = PluginRepository("https://repo.example.com/").download_url(
            build, PluginRef(id="p", channel="eap")
        )
        assert url == "https://repo.example.com/pluginManager?action=download&id=p&channel=eap&build=IU-232.1"

    def test_direct_url(self, build):
        ref = PluginRef(url="https://example.com/plugin.zip")
        assert PluginRepository().download_url(build, ref) == "https://example.com/plugin.zip"

    def test_resolve_plugin(self, build):
        part = PluginRepository().resolve_plugin(build, PluginRef(id="p", version="1"))
        assert part.kind is ArtifactKind.IDEA_PLUGIN
        assert part.url.startswith("https://plugins.jetbrains.com/plugin/download?")


class TestRepositoryFromSettings:
    """Test building the repository from configuration."""

    def test_base_url_from_yaml(self, tmp_path, build):
        config = tmp_path / "packager.yaml"
        config.write_text("repository:\n  base_url: https://mirror.example.com/\n")
        settings = ConfigurationBuilder().add_source(YAMLConfigurationSource(config)).build()

        repository = PluginRepository.from_settings(settings)
        assert repository.base_url == "https://mirror.example.com"
        assert repository.download_url(build, PluginRef(id="p", version="1")).startswith(
            "https://mirror.example.com/plugin/download?"
        )
