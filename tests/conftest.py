"""
Shared fixtures: plugin manifests, jar factories, class files and a
populated platform root.
"""

import struct
import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import pytest

from idea_packager.infrastructure.observability import reset_logging


def write_plugin_xml(
    plugin_id: str,
    name: Optional[str] = None,
    version: str = "1.0",
    since: str = "",
    until: str = "",
    depends: Iterable[str] = (),
) -> str:
    idea_version = ""
    if since or until:
        attrs = []
        if since:
            attrs.append(f'since-build="{since}"')
        if until:
            attrs.append(f'until-build="{until}"')
        idea_version = f"<idea-version {' '.join(attrs)}/>"
    deps = "".join(f"<depends>{d}</depends>" for d in depends)
    return (
        "<idea-plugin>"
        f"<id>{plugin_id}</id>"
        f"<name>{name or plugin_id}</name>"
        "<vendor>JetBrains</vendor>"
        f"<version>{version}</version>"
        f"{idea_version}{deps}"
        "</idea-plugin>"
    )


def write_jar(path: Path, entries: Dict[str, Union[str, bytes]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def build_class_file(class_name: str, strings: Iterable[str] = (), with_long: bool = True) -> bytes:
    """Minimal class file: a constant pool with the class name, extra UTF-8 strings and a long."""
    pool = b""
    slots = 0

    def add(entry: bytes, width: int = 1) -> int:
        nonlocal pool, slots
        pool += entry
        index = slots + 1
        slots += width
        return index

    def utf8(value: str) -> int:
        raw = value.encode("utf-8")
        return add(struct.pack(">BH", 1, len(raw)) + raw)

    name_index = utf8(class_name)
    this_class = add(struct.pack(">BH", 7, name_index))
    super_name = utf8("java/lang/Object")
    super_class = add(struct.pack(">BH", 7, super_name))
    for value in strings:
        utf8(value)
    if with_long:
        add(struct.pack(">Bq", 5, 42), width=2)

    header = struct.pack(">IHHH", 0xCAFEBABE, 0, 52, slots + 1)
    body = struct.pack(">HHHHHHH", 0x0021, this_class, super_class, 0, 0, 0, 0)
    return header + pool + body


def read_utf8_constants(data: bytes):
    """Decode the UTF-8 constants of a class file built by build_class_file."""
    count = struct.unpack_from(">H", data, 8)[0]
    pos, index, values = 10, 1, []
    while index < count:
        tag = data[pos]
        if tag == 1:
            length = struct.unpack_from(">H", data, pos + 1)[0]
            values.append(data[pos + 3:pos + 3 + length].decode("utf-8"))
            pos += 3 + length
            index += 1
        elif tag == 7:
            pos += 3
            index += 1
        elif tag == 5:
            pos += 9
            index += 2
        else:
            raise AssertionError(f"unexpected tag {tag}")
    return values


def snapshot_tree(root: Path) -> Dict[str, bytes]:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*")) if p.is_file()
    }


@pytest.fixture
def plugin_xml():
    return write_plugin_xml


@pytest.fixture
def make_jar():
    return write_jar


@pytest.fixture
def class_file():
    return build_class_file


@pytest.fixture
def platform_root(tmp_path):
    """
    A platform distribution with three plugins and one platform module:

    - ``plugins/exploded`` with ``META-INF/plugin.xml``
    - ``plugins/packed`` with the manifest inside ``lib/packed.jar``
    - ``plugins/broken`` without any manifest
    - ``lib/modules/intellij.platform.core.jar``
    """
    root = tmp_path / "idea"

    exploded = root / "plugins" / "exploded" / "META-INF" / "plugin.xml"
    exploded.parent.mkdir(parents=True)
    exploded.write_text(write_plugin_xml("org.example.exploded", depends=["com.intellij.modules.java"]))

    write_jar(
        root / "plugins" / "packed" / "lib" / "packed.jar",
        {"META-INF/plugin.xml": write_plugin_xml("org.example.packed", version="2.1")},
    )
    write_jar(root / "plugins" / "packed" / "lib" / "a-dependency.jar", {"a/B.class": b"\x00"})

    (root / "plugins" / "broken").mkdir(parents=True)

    write_jar(root / "lib" / "modules" / "intellij.platform.core.jar", {"x.txt": "x"})
    return root


@pytest.fixture(autouse=True)
def _reset_packager_logging():
    yield
    reset_logging()
