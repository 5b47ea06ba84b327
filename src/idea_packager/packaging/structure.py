"""
Packaging Structure Extraction

Turns the per-project build data of a multi-project build into a graph of
packaged project nodes, each carrying its resolved libraries and packaging
options. The graph is what the mappings builder walks.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..domain.models import (
    DEFAULT_LIBRARY_MAPPINGS,
    ExcludeFilter,
    MergeIntoParent,
    ModuleKey,
    PackagingMethod,
    ShadePattern,
    Skip,
)
from ..infrastructure.exceptions import MappingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedLibrary:
    """A library artifact produced by dependency resolution."""
    key: ModuleKey
    path: Path


@dataclass
class PackageProjectData:
    """Everything the build knows about packaging one project."""
    project: str
    managed_classpath: List[ResolvedLibrary] = field(default_factory=list)
    library_dependencies: List[ModuleKey] = field(default_factory=list)
    additional_projects: List[str] = field(default_factory=list)
    assemble_libraries: bool = False
    products: List[Path] = field(default_factory=list)
    product_directories: List[Path] = field(default_factory=list)
    library_mappings: Sequence[Tuple[ModuleKey, Optional[str]]] = DEFAULT_LIBRARY_MAPPINGS
    file_mappings: List[Tuple[Path, str]] = field(default_factory=list)
    packaging_method: PackagingMethod = field(default_factory=MergeIntoParent)
    shade_patterns: List[ShadePattern] = field(default_factory=list)
    exclude_filter: ExcludeFilter = ExcludeFilter.ALL_PASS


@dataclass(frozen=True)
class ProjectPackagingOptions:
    packaging_method: PackagingMethod
    library_mappings: Tuple[Tuple[ModuleKey, Optional[str]], ...]
    file_mappings: Tuple[Tuple[Path, str], ...]
    shade_patterns: Tuple[ShadePattern, ...]
    exclude_filter: ExcludeFilter
    class_roots: Tuple[Path, ...]
    assemble_libraries: bool


@dataclass(eq=False)
class PackagedProjectNode:
    """One project in the packaging graph."""
    name: str
    packaging_options: ProjectPackagingOptions
    libs: List[ResolvedLibrary] = field(default_factory=list)
    parents: List["PackagedProjectNode"] = field(default_factory=list)
    children: List["PackagedProjectNode"] = field(default_factory=list)
    is_root: bool = False

    def __repr__(self) -> str:
        return f"PackagedProjectNode({self.name!r}, children={[c.name for c in self.children]})"


class PackagingStructureExtractor:
    """
    Builds the packaging graph rooted at ``root_project``.

    ``build_dependencies`` maps each project to the projects it depends on
    on the compile classpath; ``additional_projects`` of each project are
    treated as extra dependencies. With ``offline=True`` class roots come
    from the product directories instead of the compiled products.
    """

    def __init__(
        self,
        root_project: str,
        data: Sequence[PackageProjectData],
        build_dependencies: Mapping[str, Sequence[str]],
        offline: bool = False,
    ):
        self.root_project = root_project
        self.data: Dict[str, PackageProjectData] = {d.project: d for d in data}
        self.build_dependencies = build_dependencies
        self.offline = offline

    def extract(self) -> List[PackagedProjectNode]:
        """Return all reachable nodes, root first, in depth-first discovery order."""
        nodes: Dict[str, PackagedProjectNode] = {}
        order: List[PackagedProjectNode] = []

        def visit(project: str) -> PackagedProjectNode:
            if project in nodes:
                return nodes[project]
            node = self._create_node(project)
            nodes[project] = node
            order.append(node)
            for dep in self._dependencies_of(project):
                child = visit(dep)
                if child is node or child in node.children:
                    continue
                node.children.append(child)
                child.parents.append(node)
            return node

        root = visit(self.root_project)
        root.is_root = True

        for node in order:
            self._check_declared_libraries(node.name)
            node.libs = self._own_libraries(node)

        logger.info(
            "Packaging structure extracted",
            extra={"root_project": self.root_project, "projects": [n.name for n in order]}
        )
        return order

    def _project_data(self, project: str) -> PackageProjectData:
        try:
            return self.data[project]
        except KeyError:
            raise MappingError(f"No packaging data for project: {project}", project=project) from None

    def _dependencies_of(self, project: str) -> List[str]:
        data = self._project_data(project)
        deps = list(self.build_dependencies.get(project, ()))
        for extra in data.additional_projects:
            if extra not in deps:
                deps.append(extra)
        return deps

    def _create_node(self, project: str) -> PackagedProjectNode:
        data = self._project_data(project)
        class_roots = data.product_directories if self.offline else data.products
        options = ProjectPackagingOptions(
            packaging_method=data.packaging_method,
            library_mappings=tuple(data.library_mappings),
            file_mappings=tuple(data.file_mappings),
            shade_patterns=tuple(data.shade_patterns),
            exclude_filter=data.exclude_filter,
            class_roots=tuple(class_roots),
            assemble_libraries=data.assemble_libraries,
        )
        return PackagedProjectNode(name=project, packaging_options=options)

    def _own_libraries(self, node: PackagedProjectNode) -> List[ResolvedLibrary]:
        """Libraries of the node minus those already on the classpath of its children."""
        provided = set()
        for child in self._descendants(node):
            provided.update(lib.key for lib in self._project_data(child.name).managed_classpath)

        own = []
        for lib in self._project_data(node.name).managed_classpath:
            if lib.key not in provided:
                own.append(lib)
        return own

    def _check_declared_libraries(self, project: str) -> None:
        data = self._project_data(project)
        resolved = [lib.key for lib in data.managed_classpath]
        for declared in data.library_dependencies:
            if not any(declared.matches(key) for key in resolved):
                logger.warning(
                    f"Declared library dependency {declared} of {project} is not on the classpath"
                )

    def _descendants(self, node: PackagedProjectNode) -> List[PackagedProjectNode]:
        seen: Dict[int, PackagedProjectNode] = {}
        stack = list(node.children)
        while stack:
            current = stack.pop()
            if id(current) in seen or current is node:
                continue
            # a skipped subtree packages nothing, so it provides nothing
            if isinstance(current.packaging_options.packaging_method, Skip):
                continue
            seen[id(current)] = current
            stack.extend(current.children)
        return list(seen.values())
