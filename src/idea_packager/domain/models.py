"""
Core Domain Models

Value objects describing how a project is packaged: library coordinates,
packaging methods, shading and exclusion rules, and the mappings that the
dist builders materialize.
"""

import fnmatch
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class ModuleKey:
    """
    Library coordinates ``org:name:revision``.

    When used as a library mapping pattern each part is a regular
    expression matched against the whole coordinate part.
    """
    org: str
    name: str
    revision: str = ".*"

    @classmethod
    def parse(cls, coordinates: str) -> "ModuleKey":
        parts = coordinates.split(":")
        if len(parts) == 2:
            return cls(parts[0], parts[1])
        if len(parts) == 3:
            return cls(*parts)
        raise ValueError(f"Invalid module coordinates: {coordinates}")

    def matches(self, other: "ModuleKey") -> bool:
        return (
            re.fullmatch(self.org, other.org) is not None
            and re.fullmatch(self.name, other.name) is not None
            and re.fullmatch(self.revision, other.revision) is not None
        )

    def __str__(self) -> str:
        return f"{self.org}:{self.name}:{self.revision}"


# Packaging methods. The set is closed: every consumer handles each variant.

@dataclass(frozen=True)
class Skip:
    """The project and its subtree are not packaged at all."""


@dataclass(frozen=True)
class MergeIntoParent:
    """Classes go into the archive of the project that depends on this one."""


@dataclass(frozen=True)
class MergeIntoOther:
    """Classes go into the default archive of another project."""
    project: str


@dataclass(frozen=True)
class DepsOnly:
    """Only the project's libraries are packaged, into ``target_path``."""
    target_path: str


@dataclass(frozen=True)
class Standalone:
    """The project gets its own archive, ``lib/<project>.jar`` unless a path is given."""
    target_path: str = ""
    static: bool = False


PackagingMethod = Union[Skip, MergeIntoParent, MergeIntoOther, DepsOnly, Standalone]


@dataclass(frozen=True)
class ShadePattern:
    """
    Class relocation rule in jarjar syntax.

    ``*`` matches within one package segment, ``**`` across segments and
    ``@N`` in the replacement refers to the N-th wildcard,
    e.g. ``ShadePattern("com.google.**", "shaded.google.@1")``.
    """
    from_pattern: str
    to_pattern: str
    _regex: "re.Pattern[str]" = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        regex = ""
        pattern = self.from_pattern.replace(".", "/")
        i = 0
        while i < len(pattern):
            if pattern.startswith("**", i):
                regex += "(.+)"
                i += 2
            elif pattern[i] == "*":
                regex += "([^/]+)"
                i += 1
            else:
                regex += re.escape(pattern[i])
                i += 1
        object.__setattr__(self, "_regex", re.compile(regex))

    def rename(self, internal_name: str) -> Optional[str]:
        """Relocated slash-separated class name, or None if the rule does not apply."""
        match = self._regex.fullmatch(internal_name)
        if match is None:
            return None
        target = self.to_pattern.replace(".", "/")
        return re.sub(r"@(\d+)", lambda m: match.group(int(m.group(1))), target)


@dataclass(frozen=True)
class ExcludeFilter:
    """Glob patterns over ``/``-separated entry paths that must not be packaged."""
    patterns: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.patterns, tuple):
            object.__setattr__(self, "patterns", tuple(self.patterns))

    def excludes(self, entry_path: str) -> bool:
        return any(fnmatch.fnmatchcase(entry_path, p) for p in self.patterns)


ExcludeFilter.ALL_PASS = ExcludeFilter()


class MappingKind(Enum):
    """Where the source of a mapping comes from."""
    TARGET = "target"
    LIB = "lib"
    LIB_ASSEMBLY = "lib_assembly"
    MISC = "misc"


class PlacementRule(Enum):
    """How a mapping lands at its destination."""
    COPY = "copy"
    MERGE = "merge"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class MappingMetadata:
    kind: MappingKind
    shading: Tuple[ShadePattern, ...] = ()
    exclude_filter: ExcludeFilter = ExcludeFilter.ALL_PASS
    static: bool = True
    project: Optional[str] = None


@dataclass(frozen=True)
class Mapping:
    """
    One placement instruction.

    ``destination`` is relative to the output directory and always uses
    ``/`` separators. MERGE mappings add their source's entries to the
    archive at ``destination``; COPY replaces it; EXCLUDE removes whatever
    earlier mappings put there.
    """
    source: Path
    destination: str
    rule: PlacementRule
    metadata: MappingMetadata

    @property
    def kind(self) -> MappingKind:
        return self.metadata.kind


# Libraries that are always provided by the platform
DEFAULT_LIBRARY_MAPPINGS: Tuple[Tuple[ModuleKey, Optional[str]], ...] = (
    (ModuleKey("org\\.scala-lang", "scala-.*", ".*"), None),
    (ModuleKey("org\\.scala-lang\\.modules", "scala-.*", ".*"), None),
)
