"""
Class Shading

Relocates classes according to ShadePattern rules: entry paths are renamed
and the UTF-8 constants of every class file (class names, descriptors and
generic signatures) are rewritten to the relocated names.
"""

import re
import struct
from typing import Callable, Optional, Sequence, Tuple

from ..domain.models import ShadePattern
from ..infrastructure.exceptions import ArtifactBuildError

CLASS_MAGIC = 0xCAFEBABE

# constant pool tag -> payload size, for entries of fixed size
_FIXED_SIZES = {
    3: 4, 4: 4, 5: 8, 6: 8, 7: 2, 8: 2, 9: 4, 10: 4, 11: 4,
    12: 4, 15: 3, 16: 2, 17: 4, 18: 4, 19: 2, 20: 2,
}
_UTF8_TAG = 1
_WIDE_TAGS = (5, 6)

_DESCRIPTOR_REF = re.compile(r"L([A-Za-z0-9_$/]+)([;<])")
_INTERNAL_NAME = re.compile(r"\[*[A-Za-z0-9_$]+(?:/[A-Za-z0-9_$]+)*")


class ClassShader:
    """Applies a sequence of shade patterns; the first matching pattern wins."""

    def __init__(self, patterns: Sequence[ShadePattern]):
        self.patterns = tuple(patterns)

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def rename_class(self, internal_name: str) -> str:
        for pattern in self.patterns:
            renamed = pattern.rename(internal_name)
            if renamed is not None:
                return renamed
        return internal_name

    def rename_entry(self, entry_path: str) -> str:
        if entry_path.endswith("/") or "/" not in entry_path:
            return entry_path
        stem, dot, ext = entry_path.rpartition(".")
        if not dot or "/" in ext:
            stem, ext = entry_path, ""
        renamed = self.rename_class(stem)
        if renamed == stem:
            return entry_path
        return f"{renamed}.{ext}" if ext else renamed

    def transform(self, entry_path: str, data: bytes) -> Tuple[str, bytes]:
        """Return the relocated entry path and content."""
        if not self.patterns:
            return entry_path, data
        if entry_path.endswith(".class"):
            data = self.rewrite_class(data, entry_path)
        return self.rename_entry(entry_path), data

    def _rewrite_string(self, value: str) -> str:
        if _INTERNAL_NAME.fullmatch(value):
            dims = len(value) - len(value.lstrip("["))
            return value[:dims] + self.rename_class(value[dims:])
        return _DESCRIPTOR_REF.sub(lambda m: f"L{self.rename_class(m.group(1))}{m.group(2)}", value)

    def rewrite_class(self, data: bytes, entry_path: str = "<class>") -> bytes:
        return rewrite_constant_pool(data, self._rewrite_string, entry_path)


def rewrite_constant_pool(data: bytes, rewrite: Callable[[str], str], entry_path: str = "<class>") -> bytes:
    """Apply ``rewrite`` to every UTF-8 constant of a class file."""
    if len(data) < 10 or struct.unpack_from(">I", data, 0)[0] != CLASS_MAGIC:
        raise ArtifactBuildError(f"Not a class file: {entry_path}", source=entry_path)

    out = bytearray(data[:10])
    count = struct.unpack_from(">H", data, 8)[0]
    pos = 10
    index = 1
    try:
        while index < count:
            tag = data[pos]
            if tag == _UTF8_TAG:
                length = struct.unpack_from(">H", data, pos + 1)[0]
                raw = data[pos + 3:pos + 3 + length]
                if len(raw) != length:
                    raise ArtifactBuildError(f"Truncated class file: {entry_path}", source=entry_path)
                out += _rewrite_utf8(raw, rewrite)
                pos += 3 + length
                index += 1
                continue
            size = _FIXED_SIZES.get(tag)
            if size is None:
                raise ArtifactBuildError(
                    f"Unknown constant pool tag {tag} in {entry_path}", source=entry_path
                )
            out += data[pos:pos + 1 + size]
            pos += 1 + size
            index += 2 if tag in _WIDE_TAGS else 1
    except (IndexError, struct.error) as e:
        raise ArtifactBuildError(f"Truncated class file: {entry_path}", source=entry_path, cause=e) from e

    out += data[pos:]
    return bytes(out)


def _rewrite_utf8(raw: bytes, rewrite: Callable[[str], str]) -> bytes:
    try:
        value = raw.decode("utf-8")
    except UnicodeDecodeError:
        # modified UTF-8 with embedded NULs or surrogates is never a class name
        return struct.pack(">BH", _UTF8_TAG, len(raw)) + raw
    encoded = rewrite(value).encode("utf-8")
    if len(encoded) > 0xFFFF:
        encoded = raw
    return struct.pack(">BH", _UTF8_TAG, len(encoded)) + encoded


def shader_for(patterns: Optional[Sequence[ShadePattern]]) -> ClassShader:
    return ClassShader(patterns or ())
