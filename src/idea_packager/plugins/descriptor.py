"""
Plugin Descriptor Module

Immutable plugin metadata and its (de)serialization to the small subset of
the ``plugin.xml`` manifest the index needs: id, name, vendor, version,
the ``idea-version`` compatibility range and the ``depends`` list.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
from xml.etree import ElementTree
from xml.parsers import expat

from ..infrastructure.exceptions import PluginDescriptorError

OPTIONAL_KEY = "(optional) "
OPTIONAL_ATTR = "optional"

DescriptorSource = Union[str, bytes, os.PathLike, Any]


@dataclass(frozen=True)
class Dependency:
    """A ``depends`` entry of a plugin manifest."""
    id: str
    optional: bool = False

    @classmethod
    def from_element(cls, text: str, attributes: Dict[str, str]) -> "Dependency":
        """
        Normalize both dependency notations into one value.

        Legacy manifests mark optional dependencies with a ``(optional) ``
        text prefix, current ones use ``optional="true"``.
        """
        legacy_optional = OPTIONAL_KEY in text
        attribute_optional = attributes.get(OPTIONAL_ATTR) == "true"
        dep_id = text.replace(OPTIONAL_KEY, "").strip()
        return cls(dep_id, legacy_optional or attribute_optional)


@dataclass(frozen=True)
class PluginDescriptor:
    """Describes one installed or packaged plugin."""
    id: str
    vendor: str = ""
    name: str = ""
    version: str = ""
    since_build: str = ""
    until_build: str = ""
    depends_on: Tuple[Dependency, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.depends_on, tuple):
            object.__setattr__(self, "depends_on", tuple(self.depends_on))

    @classmethod
    def of_id(cls, plugin_id: str) -> "PluginDescriptor":
        """Minimal descriptor carrying nothing but an identifier."""
        return cls(id=plugin_id)

    @classmethod
    def load(cls, source: DescriptorSource) -> "PluginDescriptor":
        """Parse a descriptor from markup text, bytes, a binary stream or a path."""
        if isinstance(source, (str, bytes)):
            data = source
            origin = "<string>"
        elif isinstance(source, (Path, os.PathLike)):
            origin = os.fspath(source)
            try:
                with open(source, "rb") as f:
                    data = f.read()
            except OSError as e:
                raise PluginDescriptorError(
                    f"Cannot read plugin descriptor: {origin}", source=origin, cause=e
                ) from e
        elif hasattr(source, "read"):
            data = source.read()
            origin = getattr(source, "name", "<stream>")
        else:
            raise TypeError(f"Unsupported descriptor source: {type(source).__name__}")

        return cls.from_element(parse_hardened(data, origin=str(origin)))

    @classmethod
    def from_element(cls, root: ElementTree.Element) -> "PluginDescriptor":
        plugin_id = _tag_text(root, "id")
        name = _tag_text(root, "name")

        since = until = ""
        idea_version = _find_tag(root, "idea-version")
        if idea_version is not None:
            since = idea_version.get("since-build", "")
            until = idea_version.get("until-build", "")

        dependencies = [
            Dependency.from_element(node.text or "", dict(node.attrib))
            for node in root.iter("depends")
        ]

        return cls(
            id=plugin_id or name,
            vendor=_tag_text(root, "vendor"),
            name=name,
            version=_tag_text(root, "version"),
            since_build=since,
            until_build=until,
            depends_on=tuple(dependencies),
        )

    def to_xml_str(self) -> str:
        root = ElementTree.Element("idea-plugin")
        ElementTree.SubElement(root, "name").text = self.name
        ElementTree.SubElement(root, "vendor").text = self.vendor
        ElementTree.SubElement(root, "id").text = self.id
        ElementTree.SubElement(root, "version").text = self.version

        if self.since_build or self.until_build:
            idea_version = ElementTree.SubElement(root, "idea-version")
            if self.since_build:
                idea_version.set("since-build", self.since_build)
            if self.until_build:
                idea_version.set("until-build", self.until_build)

        for dep in self.depends_on:
            node = ElementTree.SubElement(root, "depends", optional="true" if dep.optional else "false")
            node.text = dep.id

        return ElementTree.tostring(root, encoding="unicode")


def _find_tag(root: ElementTree.Element, tag: str) -> Optional[ElementTree.Element]:
    # top-level tags first, nested ones only as a fallback
    node = root.find(tag)
    if node is None:
        node = root.find(f".//{tag}")
    return node


def _tag_text(root: ElementTree.Element, tag: str) -> str:
    node = _find_tag(root, tag)
    if node is None:
        return ""
    return "".join(node.itertext()).strip()


def parse_hardened(data: Union[str, bytes], origin: str = "<string>") -> ElementTree.Element:
    """
    Parse markup without ever expanding entities.

    DOCTYPE declarations are accepted and ignored, but entity declarations,
    external entity references and external parameter entities all abort
    the parse.
    """
    builder = ElementTree.TreeBuilder()
    parser = expat.ParserCreate()
    parser.buffer_text = True
    parser.SetParamEntityParsing(expat.XML_PARAM_ENTITY_PARSING_NEVER)

    def reject_entity_decl(name, *args):
        raise PluginDescriptorError(f"Entity declarations are not allowed: {name}", source=origin)

    def reject_external_ref(context, base, system_id, public_id):
        raise PluginDescriptorError(
            f"External entity references are not allowed: {system_id}", source=origin
        )

    def reject_unparsed_entity(name, *args):
        raise PluginDescriptorError(f"Unparsed entities are not allowed: {name}", source=origin)

    parser.EntityDeclHandler = reject_entity_decl
    parser.UnparsedEntityDeclHandler = reject_unparsed_entity
    parser.ExternalEntityRefHandler = reject_external_ref
    parser.StartElementHandler = lambda tag, attrs: builder.start(tag, attrs)
    parser.EndElementHandler = builder.end
    parser.CharacterDataHandler = builder.data

    try:
        parser.Parse(data, True)
        return builder.close()
    except expat.ExpatError as e:
        raise PluginDescriptorError(f"Malformed plugin descriptor: {e}", source=origin, cause=e) from e
