"""
Mappings Builder

Walks the packaging graph and flattens it into an ordered list of
placement mappings. Automatic mappings (project classes and libraries)
come first in traversal order; explicit library overrides and file
mappings follow, so that they win whenever they share a destination.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Set, Sequence

from ..domain.models import (
    DepsOnly,
    Mapping,
    MappingKind,
    MappingMetadata,
    MergeIntoOther,
    MergeIntoParent,
    ModuleKey,
    PlacementRule,
    Skip,
    Standalone,
)
from ..infrastructure.exceptions import MappingError
from .structure import PackagedProjectNode, ResolvedLibrary

logger = logging.getLogger(__name__)

_NO_OVERRIDE = object()


@dataclass(frozen=True)
class _Context:
    archive: str
    static: bool
    libs_only: bool = False


class LinearMappingsBuilder:
    """Builds the mapping list for one packaging graph."""

    def __init__(self, library_base_dir: str = "lib"):
        self.library_base_dir = library_base_dir.strip("/")
        self._automatic: List[Mapping] = []
        self._explicit: List[Mapping] = []
        self._processed_nodes: Set[str] = set()
        self._processed_libs: Set[ModuleKey] = set()

    def build_mappings(self, nodes: Sequence[PackagedProjectNode]) -> List[Mapping]:
        if not nodes:
            raise MappingError("Packaging structure is empty")
        root = next((n for n in nodes if n.is_root), nodes[0])

        self._automatic, self._explicit = [], []
        self._processed_nodes, self._processed_libs = set(), set()

        self._process_node(root, None)

        mappings = self._automatic + self._explicit
        logger.info(
            f"Built {len(mappings)} mappings",
            extra={"root_project": root.name, "explicit": len(self._explicit)}
        )
        return mappings

    def default_archive(self, project: str) -> str:
        return f"{self.library_base_dir}/{project}.jar"

    def _context_for(self, node: PackagedProjectNode, parent: Optional[_Context]) -> _Context:
        method = node.packaging_options.packaging_method
        if isinstance(method, MergeIntoParent):
            if parent is None or parent.libs_only:
                return _Context(self.default_archive(node.name), static=True)
            return parent
        if isinstance(method, MergeIntoOther):
            return _Context(self.default_archive(method.project), static=True)
        if isinstance(method, DepsOnly):
            return _Context(method.target_path, static=True, libs_only=True)
        if isinstance(method, Standalone):
            archive = method.target_path or self.default_archive(node.name)
            return _Context(archive, static=method.static)
        raise MappingError(
            f"Unsupported packaging method {type(method).__name__}", project=node.name
        )

    def _process_node(self, node: PackagedProjectNode, parent: Optional[_Context]) -> None:
        if node.name in self._processed_nodes:
            return
        self._processed_nodes.add(node.name)

        if isinstance(node.packaging_options.packaging_method, Skip):
            logger.debug(f"Skipping project {node.name}")
            return

        ctx = self._context_for(node, parent)

        if not ctx.libs_only:
            self._process_targets(node, ctx)
        self._process_libraries(node, ctx)

        for child in node.children:
            self._process_node(child, ctx)

        self._process_file_mappings(node)

    def _metadata(self, node: PackagedProjectNode, kind: MappingKind, ctx: Optional[_Context] = None) -> MappingMetadata:
        options = node.packaging_options
        return MappingMetadata(
            kind=kind,
            shading=options.shade_patterns if kind in (MappingKind.TARGET, MappingKind.LIB_ASSEMBLY) else (),
            exclude_filter=options.exclude_filter,
            static=ctx.static if ctx else True,
            project=node.name,
        )

    def _add(self, target: List[Mapping], node: PackagedProjectNode, mapping: Mapping) -> None:
        if node.packaging_options.exclude_filter.excludes(mapping.destination):
            logger.debug(f"Mapping to {mapping.destination} excluded by filter of {node.name}")
            return
        target.append(mapping)

    def _process_targets(self, node: PackagedProjectNode, ctx: _Context) -> None:
        for class_root in node.packaging_options.class_roots:
            self._add(self._automatic, node, Mapping(
                source=class_root,
                destination=ctx.archive,
                rule=PlacementRule.MERGE,
                metadata=self._metadata(node, MappingKind.TARGET, ctx),
            ))

    def _library_override(self, node: PackagedProjectNode, lib: ResolvedLibrary):
        for pattern, target in node.packaging_options.library_mappings:
            if pattern.matches(lib.key):
                return target
        return _NO_OVERRIDE

    def _process_libraries(self, node: PackagedProjectNode, ctx: _Context) -> None:
        options = node.packaging_options
        for lib in node.libs:
            if lib.key in self._processed_libs:
                continue
            self._processed_libs.add(lib.key)

            default_path = f"{self.library_base_dir}/{lib.path.name}"
            override = self._library_override(node, lib)

            if override is None:
                self._add(self._explicit, node, Mapping(
                    lib.path, default_path, PlacementRule.EXCLUDE, self._metadata(node, MappingKind.LIB, ctx)
                ))
            elif override is not _NO_OVERRIDE:
                destination = override + lib.path.name if override.endswith("/") else override
                self._add(self._explicit, node, Mapping(
                    lib.path, destination, PlacementRule.COPY, self._metadata(node, MappingKind.LIB, ctx)
                ))
            elif options.assemble_libraries or ctx.libs_only:
                self._add(self._automatic, node, Mapping(
                    lib.path, ctx.archive, PlacementRule.MERGE, self._metadata(node, MappingKind.LIB_ASSEMBLY, ctx)
                ))
            else:
                self._add(self._automatic, node, Mapping(
                    lib.path, default_path, PlacementRule.COPY, self._metadata(node, MappingKind.LIB, ctx)
                ))

    def _process_file_mappings(self, node: PackagedProjectNode) -> None:
        for source, destination in node.packaging_options.file_mappings:
            self._add(self._explicit, node, Mapping(
                source=source,
                destination=destination.strip("/"),
                rule=PlacementRule.COPY,
                metadata=self._metadata(node, MappingKind.MISC),
            ))
