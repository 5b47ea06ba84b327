"""
Plugin Repository URLs

Builds download locations for plugins hosted on the plugin repository.
Only the URLs are produced here; fetching them is left to the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlencode


class IdeaEdition(Enum):
    COMMUNITY = "IC"
    ULTIMATE = "IU"


class ArtifactKind(Enum):
    IDEA_PLUGIN = "idea_plugin"


@dataclass(frozen=True)
class BuildInfo:
    """Platform build the plugin has to be compatible with."""
    build_number: str
    edition: IdeaEdition = IdeaEdition.COMMUNITY

    @property
    def full_build(self) -> str:
        return f"{self.edition.value}-{self.build_number}"


@dataclass(frozen=True)
class PluginRef:
    """A plugin requested either by repository id or by direct URL."""
    id: Optional[str] = None
    version: Optional[str] = None
    channel: Optional[str] = None
    url: Optional[str] = None

    def __post_init__(self):
        if bool(self.id) == bool(self.url):
            raise ValueError("PluginRef needs exactly one of id or url")


@dataclass(frozen=True)
class ArtifactPart:
    url: str
    kind: ArtifactKind


class PluginRepository:
    """URL construction for the plugin repository."""

    def __init__(self, base_url: str = "https://plugins.jetbrains.com"):
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings) -> "PluginRepository":
        return cls(settings.get_repository_config().base_url)

    def download_url(self, build: BuildInfo, plugin: PluginRef) -> str:
        if plugin.url:
            return plugin.url

        if plugin.version:
            # a pinned version does not depend on the platform build
            params = [("pluginId", plugin.id), ("version", plugin.version)]
            if plugin.channel:
                params.append(("channel", plugin.channel))
            return f"{self.base_url}/plugin/download?{urlencode(params)}"

        params = [("action", "download"), ("id", plugin.id)]
        if plugin.channel:
            params.append(("channel", plugin.channel))
        params.append(("build", build.full_build))
        return f"{self.base_url}/pluginManager?{urlencode(params)}"

    def resolve_plugin(self, build: BuildInfo, plugin: PluginRef) -> ArtifactPart:
        return ArtifactPart(self.download_url(build, plugin), ArtifactKind.IDEA_PLUGIN)
